from ringgitcalc.backend.config.validator import (
    main,
    validate_all_years,
    validate_year_configuration,
)
from ringgitcalc.backend.config.year_config import FactorTable, load_year_configuration


def test_current_configurations_are_valid() -> None:
    results = validate_all_years()
    assert results
    assert all(not issues for issues in results.values()), results


def test_validator_flags_decreasing_bracket_rates() -> None:
    config = load_year_configuration(2025)
    brackets = list(config.tax.brackets)
    brackets[2] = brackets[2].model_copy(update={"rate": 0.001})
    broken = config.model_copy(
        update={"tax": config.tax.model_copy(update={"brackets": tuple(brackets)})}
    )

    errors = validate_year_configuration(broken)

    assert any("tax.brackets" in error and "bracket 3" in error for error in errors)


def test_validator_flags_invalid_epf_rate() -> None:
    config = load_year_configuration(2025)
    payroll = config.tax.payroll.model_copy(update={"employee_epf_rate": 1.5})
    broken = config.model_copy(
        update={"tax": config.tax.model_copy(update={"payroll": payroll})}
    )

    errors = validate_year_configuration(broken)

    assert any("tax.payroll" in error and "between 0 and 1" in error for error in errors)


def test_validator_flags_uppercase_factor_keys() -> None:
    config = load_year_configuration(2025)
    loadings = config.insurance.loadings.model_copy(
        update={"region": FactorTable(factors={"KL": 1.05})}
    )
    broken = config.model_copy(
        update={"insurance": config.insurance.model_copy(update={"loadings": loadings})}
    )

    errors = validate_year_configuration(broken)

    assert any("insurance.loadings.region" in error and "lowercase" in error for error in errors)


def test_validator_flags_ncd_cap_outside_percentage_range() -> None:
    config = load_year_configuration(2025)
    broken = config.model_copy(
        update={"insurance": config.insurance.model_copy(update={"ncd_cap_percent": 120})}
    )

    errors = validate_year_configuration(broken)

    assert any("NCD cap" in error for error in errors)


def test_validator_flags_unordered_road_tax_bands() -> None:
    config = load_year_configuration(2025)
    bands = list(config.vehicle.road_tax_bands)
    bands[0], bands[1] = bands[1], bands[0]
    broken = config.model_copy(
        update={"vehicle": config.vehicle.model_copy(update={"road_tax_bands": tuple(bands)})}
    )

    errors = validate_year_configuration(broken)

    assert any("vehicle.road_tax_bands" in error for error in errors)


def test_cli_reports_success(capsys) -> None:
    exit_code = main(["2025"])

    assert exit_code == 0
    assert "[2025] OK" in capsys.readouterr().out


def test_cli_reports_missing_year(capsys) -> None:
    exit_code = main(["1999"])

    assert exit_code == 1
    assert "failed to load configuration" in capsys.readouterr().out
