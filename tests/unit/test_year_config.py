"""Unit coverage for year configuration discovery and parsing utilities."""

from __future__ import annotations

from pathlib import Path
from shutil import copy2

import pytest
import yaml
from pydantic import ValidationError

from ringgitcalc.backend.config import year_config
from ringgitcalc.backend.config.schema import (
    ConfigurationError,
    FactorTable,
    TaxConfig,
    VehicleConfig,
)


@pytest.fixture()
def isolated_config_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Return a temporary configuration directory patched into ``year_config``."""

    original_directory = year_config.CONFIG_DIRECTORY
    copy2(original_directory / "2025.yaml", tmp_path / "2025.yaml")
    manifest_path = tmp_path / "manifest.yaml"
    copy2(original_directory / "manifest.yaml", manifest_path)

    monkeypatch.setattr(year_config, "CONFIG_DIRECTORY", tmp_path)
    monkeypatch.setattr(year_config, "MANIFEST_FILE", manifest_path)
    year_config.load_year_configuration.cache_clear()
    year_config.load_manifest.cache_clear()

    yield tmp_path

    year_config.load_year_configuration.cache_clear()
    year_config.load_manifest.cache_clear()


def _add_manifest_entry(directory: Path, entry: dict) -> None:
    manifest_path = directory / "manifest.yaml"
    manifest = yaml.safe_load(manifest_path.read_text())
    manifest.setdefault("years", []).append(entry)
    manifest_path.write_text(yaml.safe_dump(manifest, sort_keys=False))
    year_config.load_manifest.cache_clear()


def test_shipped_manifest_lists_2025() -> None:
    assert 2025 in year_config.available_years()
    assert year_config.default_year() == year_config.available_years()[-1]


def test_load_2025_tables() -> None:
    config = year_config.load_year_configuration(2025)

    assert config.year == 2025
    assert config.currency == "RM"
    assert config.tax.personal_relief == 9000
    assert config.tax.brackets[-1].upper_bound is None
    assert config.tax.grouped_relief_ids == frozenset({"voluntary_epf", "prs", "life_insurance"})
    assert config.insurance.segment_rates["B"] == pytest.approx(0.028)
    assert set(config.vehicle.segments) == set(config.insurance.segment_rates)
    assert config.loan.max_months == 600
    assert config.loan.plausible_rate_percent == 15
    assert config.loan.max_term_years == 35


def test_new_manifest_entry_is_discovered(isolated_config_directory: Path) -> None:
    (isolated_config_directory / "2030.yaml").write_text(
        (isolated_config_directory / "2025.yaml").read_text().replace("year: 2025", "year: 2030")
    )
    _add_manifest_entry(isolated_config_directory, {"year": 2030})

    assert year_config.available_years() == (2025, 2030)
    assert year_config.default_year() == 2030
    assert year_config.load_year_configuration(2030).year == 2030


def test_manifest_filename_override(isolated_config_directory: Path) -> None:
    (isolated_config_directory / "draft.yaml").write_text(
        (isolated_config_directory / "2025.yaml").read_text().replace("year: 2025", "year: 2026")
    )
    _add_manifest_entry(
        isolated_config_directory, {"year": 2026, "filename": "draft.yaml", "status": "draft"}
    )

    entry = year_config.load_manifest().get_entry(2026)

    assert entry.resolved_filename == "draft.yaml"
    assert year_config.load_year_configuration(2026).year == 2026


def test_missing_year_raises_file_not_found() -> None:
    with pytest.raises(FileNotFoundError):
        year_config.load_year_configuration(1999)


def test_year_mismatch_is_rejected(isolated_config_directory: Path) -> None:
    copy2(isolated_config_directory / "2025.yaml", isolated_config_directory / "2027.yaml")
    _add_manifest_entry(isolated_config_directory, {"year": 2027})

    with pytest.raises(ConfigurationError):
        year_config.load_year_configuration(2027)


def test_duplicate_manifest_years_are_rejected(isolated_config_directory: Path) -> None:
    _add_manifest_entry(isolated_config_directory, {"year": 2025})

    with pytest.raises(ConfigurationError):
        year_config.load_manifest()


def test_brackets_must_ascend() -> None:
    with pytest.raises((ConfigurationError, ValidationError)):
        TaxConfig.model_validate(
            {
                "brackets": [
                    {"upper": 20000, "rate": 0.01},
                    {"upper": 5000, "rate": 0.0},
                    {"rate": 0.28},
                ],
                "non_resident_rate": 0.3,
                "personal_relief": 9000,
                "reliefs": {},
            }
        )


def test_final_bracket_must_be_open() -> None:
    with pytest.raises((ConfigurationError, ValidationError)):
        TaxConfig.model_validate(
            {
                "brackets": [{"upper": 5000, "rate": 0.0}],
                "non_resident_rate": 0.3,
                "personal_relief": 9000,
                "reliefs": {},
            }
        )


def test_grouped_relief_cannot_also_be_individual() -> None:
    with pytest.raises((ConfigurationError, ValidationError)):
        TaxConfig.model_validate(
            {
                "brackets": [{"rate": 0.1}],
                "non_resident_rate": 0.3,
                "personal_relief": 9000,
                "reliefs": {"prs": {"label": "PRS", "cap": 3000}},
                "relief_groups": {
                    "voluntary": {"label": "Voluntary", "members": ["prs"], "cap": 7000}
                },
            }
        )


def test_road_tax_needs_open_final_band() -> None:
    with pytest.raises((ConfigurationError, ValidationError)):
        VehicleConfig.model_validate(
            {
                "segments": {},
                "road_tax_bands": [{"upper": 1000, "base": 20}],
                "fuel_price_per_litre": 2.5,
                "minimum_fuel_efficiency": 6,
            }
        )


def test_factor_table_accepts_flat_mapping() -> None:
    table = FactorTable.model_validate({"kl": 1.05, "default": 1.0})

    assert table.factor_for("KL ") == pytest.approx(1.05)
    assert table.factor_for("ipoh") == 1.0
    assert table.factor_for(None) == 1.0
