"""Unit coverage for the motor insurance premium pipeline."""

from __future__ import annotations

import pytest

from ringgitcalc.backend.app.models import InsuranceInput
from ringgitcalc.backend.app.services.calculators.insurance import (
    compute_insurance_premium,
    compute_sum_insured,
    resolve_segment,
)
from ringgitcalc.backend.config.year_config import YearConfiguration


def _quote(config: YearConfiguration, **overrides):
    values = {"vehicle_price": 100000.0, "segment": "B"}
    values.update(overrides)
    return compute_insurance_premium(InsuranceInput(**values), config.insurance)


def test_reference_comprehensive_quote(config_2025: YearConfiguration) -> None:
    outcome = _quote(config_2025, ncd_percent=55)
    result = outcome.result

    assert result.sum_insured == pytest.approx(100000)
    assert result.own_damage_base == pytest.approx(2800)
    assert result.own_damage_after_ncd == pytest.approx(1260)
    assert result.third_party_premium == pytest.approx(200)
    assert result.pre_tax_total == pytest.approx(1460)
    assert not result.minimum_premium_applied
    assert result.service_tax == pytest.approx(116.8)
    assert result.final_payable == pytest.approx(1586.8)
    assert outcome.warnings == ()


@pytest.mark.parametrize(
    ("age", "ratio"),
    [(0, 1.0), (1, 0.96), (5, 0.80), (10, 0.60), (12, 0.60), (40, 0.60)],
)
def test_sum_insured_depreciates_to_floor(
    config_2025: YearConfiguration, age: int, ratio: float
) -> None:
    sum_insured = compute_sum_insured(100000, age, config_2025.insurance)

    assert sum_insured == pytest.approx(100000 * ratio)
    assert sum_insured >= 60000 - 1e-6


def test_loadings_multiply_own_damage_only(config_2025: YearConfiguration) -> None:
    result = _quote(
        config_2025,
        driver_age_band="under25",
        region="KL",
        body_type="SUV",
        ownership="company",
    ).result

    assert [loading.factor for loading in result.loadings] == [1.2, 1.05, 1.1, 1.2]
    assert result.own_damage_loaded == pytest.approx(2800 * 1.2 * 1.05 * 1.1 * 1.2)
    assert result.third_party_premium == pytest.approx(200)


def test_unknown_loading_keys_default_to_one(config_2025: YearConfiguration) -> None:
    result = _quote(config_2025, region="atlantis", body_type="sedan").result

    assert all(loading.factor == 1.0 for loading in result.loadings)
    assert result.own_damage_loaded == pytest.approx(result.own_damage_base)


def test_add_ons_are_not_discounted(config_2025: YearConfiguration) -> None:
    result = _quote(
        config_2025, ncd_percent=55, include_flood=True, include_windscreen=True
    ).result

    assert result.flood_premium == pytest.approx(250)
    assert result.windscreen_premium == pytest.approx(300)
    assert result.pre_tax_total == pytest.approx(1260 + 200 + 250 + 300)


def test_windscreen_value_is_capped(config_2025: YearConfiguration) -> None:
    small = _quote(config_2025, vehicle_price=50000, include_windscreen=True).result
    large = _quote(config_2025, vehicle_price=400000, include_windscreen=True).result

    assert small.windscreen_premium == pytest.approx(1000 * 0.15)
    assert large.windscreen_premium == pytest.approx(2000 * 0.15)


def test_third_party_cover_has_no_own_damage(config_2025: YearConfiguration) -> None:
    outcome = _quote(config_2025, coverage="third_party", include_flood=True)
    result = outcome.result

    assert result.own_damage_base == 0
    assert result.flood_premium == 0
    assert result.third_party_premium == pytest.approx(100)
    assert any("comprehensive" in warning for warning in outcome.warnings)


def test_minimum_premium_floor(config_2025: YearConfiguration) -> None:
    result = _quote(config_2025, vehicle_price=10000, coverage="third_party").result

    assert result.minimum_premium_applied
    assert result.premium == pytest.approx(263.13)
    assert result.final_payable == pytest.approx(263.13 * 1.08 + 10)


def test_ncd_is_capped(config_2025: YearConfiguration) -> None:
    outcome = _quote(config_2025, ncd_percent=70)

    assert outcome.result.ncd_percent == 55
    assert outcome.result.own_damage_after_ncd == pytest.approx(1260)
    assert any("capped at 55%" in warning for warning in outcome.warnings)


def test_negative_ncd_counts_as_zero(config_2025: YearConfiguration) -> None:
    outcome = _quote(config_2025, ncd_percent=-10)

    assert outcome.result.ncd_percent == 0
    assert outcome.result.own_damage_after_ncd == pytest.approx(2800)
    assert outcome.warnings


def test_zero_price_gives_empty_result(config_2025: YearConfiguration) -> None:
    outcome = _quote(config_2025, vehicle_price=0)

    assert outcome.result.is_empty
    assert outcome.result.sum_insured == 0
    assert outcome.warnings == ()


def test_unknown_segment_is_reported(config_2025: YearConfiguration) -> None:
    outcome = _quote(config_2025, segment="Z")

    assert outcome.result.own_damage_base == 0
    assert outcome.result.third_party_premium == pytest.approx(200)
    assert any("Unknown vehicle segment" in warning for warning in outcome.warnings)


def test_segment_lookup_ignores_case(config_2025: YearConfiguration) -> None:
    assert resolve_segment("supercar", config_2025.insurance) == "Supercar"
    assert resolve_segment(" b ", config_2025.insurance) == "B"
    assert resolve_segment("G", config_2025.insurance) is None


def test_final_payable_never_below_floor(config_2025: YearConfiguration) -> None:
    floor = 263.13 * 1.08 + 10
    for price in (1000, 20000, 80000, 300000):
        for coverage in ("comprehensive", "third_party"):
            result = _quote(config_2025, vehicle_price=price, coverage=coverage).result
            assert result.final_payable >= floor - 1e-6
