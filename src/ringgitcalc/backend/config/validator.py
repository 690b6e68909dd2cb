"""Utilities for validating rate table configuration and surfacing issues."""

from __future__ import annotations

import argparse
from typing import Mapping, Sequence

from .year_config import (
    FactorTable,
    InsuranceConfig,
    LoanConfig,
    TaxConfig,
    VehicleConfig,
    YearConfiguration,
    available_years,
    load_year_configuration,
)


def _format_scope(scope: str, message: str) -> str:
    return f"{scope}: {message}"


def _validate_fraction(scope: str, label: str, value: float) -> list[str]:
    if value < 0 or value > 1:
        return [_format_scope(scope, f"{label} {value} must be between 0 and 1")]
    return []


def _validate_tax(tax: TaxConfig) -> list[str]:
    errors: list[str] = []

    previous_rate = -1.0
    for index, bracket in enumerate(tax.brackets):
        if bracket.rate < previous_rate:
            errors.append(
                _format_scope(
                    "tax.brackets",
                    f"bracket {index + 1} rate {bracket.rate} is lower than the previous bracket",
                )
            )
        previous_rate = bracket.rate

    errors.extend(_validate_fraction("tax", "non-resident rate", tax.non_resident_rate))

    for relief_id, rule in tax.reliefs.items():
        if not rule.label.strip():
            errors.append(_format_scope(f"tax.reliefs.{relief_id}", "label must not be empty"))

    for group_id, group in tax.relief_groups.items():
        if group.cap == 0:
            errors.append(
                _format_scope(f"tax.relief_groups.{group_id}", "joint cap of 0 disables the group")
            )

    payroll = tax.payroll
    errors.extend(
        _validate_fraction("tax.payroll", "employee EPF rate", payroll.employee_epf_rate)
    )
    errors.extend(
        _validate_fraction("tax.payroll", "employer EPF rate", payroll.employer_epf_rate)
    )
    for field_name, limit in payroll.plausible_limits.items():
        if limit <= 0:
            errors.append(
                _format_scope(
                    "tax.payroll.plausible_limits",
                    f"limit for '{field_name}' must be positive",
                )
            )

    return errors


def _validate_loan(loan: LoanConfig) -> list[str]:
    errors: list[str] = []
    if loan.balance_epsilon >= 1:
        errors.append(_format_scope("loan", "balance epsilon should be below one currency unit"))
    if loan.plausible_rate_percent is not None and loan.plausible_rate_percent <= 0:
        errors.append(_format_scope("loan", "plausible rate bound must be positive"))
    if loan.max_term_years is not None and loan.max_term_years <= 0:
        errors.append(_format_scope("loan", "maximum term must be positive"))
    return errors


def _validate_factor_table(scope: str, table: FactorTable) -> list[str]:
    errors: list[str] = []
    if table.default <= 0:
        errors.append(_format_scope(scope, "default factor must be positive"))
    for key, factor in table.factors.items():
        if factor <= 0:
            errors.append(_format_scope(scope, f"factor for '{key}' must be positive"))
        if key != key.strip().lower():
            errors.append(_format_scope(scope, f"key '{key}' must be lowercase"))
    return errors


def _validate_insurance(insurance: InsuranceConfig) -> list[str]:
    errors: list[str] = []
    scope = "insurance"

    for segment, rate in insurance.segment_rates.items():
        errors.extend(
            _validate_fraction(f"{scope}.segment_rates", f"segment '{segment}' rate", rate)
        )
    for coverage, rate in insurance.third_party_rates.items():
        errors.extend(
            _validate_fraction(f"{scope}.third_party_rates", f"'{coverage}' rate", rate)
        )

    floor_age = insurance.max_depreciation_years * insurance.depreciation_rate_per_year
    if floor_age > 1:
        errors.append(
            _format_scope(scope, "depreciation exceeds the full vehicle value before the age cap")
        )

    loadings: Mapping[str, FactorTable] = {
        "driver_age": insurance.loadings.driver_age,
        "region": insurance.loadings.region,
        "body_type": insurance.loadings.body_type,
        "ownership": insurance.loadings.ownership,
    }
    for name, table in loadings.items():
        errors.extend(_validate_factor_table(f"{scope}.loadings.{name}", table))

    add_ons = insurance.add_ons
    for label, value in {
        "flood rate": add_ons.flood_rate,
        "windscreen value rate": add_ons.windscreen_value_rate,
        "windscreen rate": add_ons.windscreen_rate,
    }.items():
        errors.extend(_validate_fraction(f"{scope}.add_ons", label, value))
    if add_ons.windscreen_value_cap < 0:
        errors.append(_format_scope(f"{scope}.add_ons", "windscreen cap must be non-negative"))

    if insurance.ncd_cap_percent < 0 or insurance.ncd_cap_percent > 100:
        errors.append(_format_scope(scope, "NCD cap must be a percentage between 0 and 100"))
    errors.extend(_validate_fraction(scope, "service tax rate", insurance.service_tax_rate))

    return errors


def _validate_vehicle(vehicle: VehicleConfig) -> list[str]:
    errors: list[str] = []
    scope = "vehicle"

    previous_upper: float | None = None
    for index, band in enumerate(vehicle.road_tax_bands):
        if band.base < 0 or band.rate_per_cc < 0:
            errors.append(
                _format_scope(f"{scope}.road_tax_bands", f"band {index + 1} must be non-negative")
            )
        if band.upper_cc is not None:
            if previous_upper is not None and band.upper_cc <= previous_upper:
                errors.append(
                    _format_scope(f"{scope}.road_tax_bands", "bands must be in ascending order")
                )
            previous_upper = band.upper_cc

    for segment_id, segment in vehicle.segments.items():
        if segment.fuel_efficiency <= 0:
            errors.append(
                _format_scope(f"{scope}.segments.{segment_id}", "fuel efficiency must be positive")
            )
        errors.extend(
            _validate_fraction(
                f"{scope}.segments.{segment_id}", "servicing rate", segment.servicing_rate
            )
        )

    errors.extend(_validate_factor_table(f"{scope}.body_type_efficiency", vehicle.body_type_efficiency))

    if vehicle.fuel_price_per_litre <= 0:
        errors.append(_format_scope(scope, "fuel price must be positive"))

    bounds = vehicle.down_payment_percent_range
    if bounds is not None and not 0 <= bounds[0] <= bounds[1] <= 100:
        errors.append(_format_scope(scope, "down payment range must lie within 0-100%"))

    return errors


def validate_year_configuration(config: YearConfiguration) -> list[str]:
    """Return a list of human-readable issues detected for ``config``."""

    errors: list[str] = []
    errors.extend(_validate_tax(config.tax))
    errors.extend(_validate_loan(config.loan))
    errors.extend(_validate_insurance(config.insurance))
    errors.extend(_validate_vehicle(config.vehicle))
    return errors


def validate_all_years(years: Sequence[int] | None = None) -> dict[int, list[str]]:
    """Validate all configured years and return issues keyed by year."""

    targets = years or available_years()
    results: dict[int, list[str]] = {}

    for year in targets:
        config = load_year_configuration(year)
        results[int(year)] = validate_year_configuration(config)

    return results


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate configured rate tables and report issues helpful to contributors."
    )
    parser.add_argument(
        "years",
        nargs="*",
        type=int,
        help="Specific years to validate (defaults to all configured years)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for running validations from the command line."""

    parser = _build_argument_parser()
    args = parser.parse_args(argv)
    years = args.years or available_years()

    if not years:
        parser.print_help()
        return 1

    exit_code = 0

    for year in years:
        try:
            config = load_year_configuration(year)
        except FileNotFoundError as error:
            print(f"[{year}] failed to load configuration: {error}")
            exit_code = 1
            continue

        issues = validate_year_configuration(config)
        if issues:
            exit_code = 1
            print(f"[{year}] {len(issues)} issue(s) detected:")
            for issue in issues:
                print(f"  - {issue}")
        else:
            print(f"[{year}] OK")

    return exit_code


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    raise SystemExit(main())
