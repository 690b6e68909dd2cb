"""Orchestrate request validation, normalisation and the pure calculators.

Each ``calculate_*`` entry point validates a raw payload against its request
model, resolves the rate tables for the requested (or latest) year, feeds a
frozen input model to the matching calculator and shapes the outcome into the
shared response structure: ``summary``, ``details``, ``chart``, ``warnings``
and ``meta``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from contextlib import contextmanager
from time import perf_counter
from typing import Any, Iterator, TypeVar

from pydantic import BaseModel, ValidationError

from ringgitcalc.backend.app.localization import Translator, get_translator
from ringgitcalc.backend.app.models import (
    CalculationResponse,
    CarOwnershipInput,
    CarOwnershipRequest,
    InsuranceInput,
    InsuranceOptions,
    InsuranceOptionsInput,
    InsuranceRequest,
    LoanParameters,
    LoanRequest,
    PayrollInput,
    TaxRequest,
    format_validation_error,
)
from ringgitcalc.backend.config.year_config import (
    YearConfiguration,
    default_year,
    load_year_configuration,
)

from .calculators import (
    InsuranceResult,
    compute_car_ownership,
    compute_insurance_premium,
    compute_loan,
    compute_salary_tax,
    format_percentage,
    round_currency,
    round_rate,
)
from .calculators.insurance import resolve_segment
from .calculators.loan import loan_amount_from_price, sample_schedule

_LOGGER = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", bound=BaseModel)


def _profiling_enabled() -> bool:
    """Return ``True`` when calculation profiling should be captured."""

    flag = os.getenv("RINGGITCALC_PROFILE_CALCULATIONS", "")
    return flag.strip().lower() in {"1", "true", "yes", "on"}


@contextmanager
def _profile_section(name: str, store: dict[str, float] | None) -> Iterator[None]:
    """Capture the duration of a named section when profiling is enabled."""

    if store is None:
        yield
        return

    start = perf_counter()
    try:
        yield
    finally:
        store[name] = perf_counter() - start


def _log_timings(calculator: str, timings: dict[str, float] | None) -> None:
    if timings is None:
        return
    _LOGGER.debug(
        "%s timings (ms): %s",
        calculator,
        {name: round(duration * 1000, 3) for name, duration in timings.items()},
    )


def _validate_request(model: type[RequestT], payload: Mapping[str, Any] | RequestT) -> RequestT:
    if isinstance(payload, model):
        return payload
    if not isinstance(payload, Mapping):
        raise ValueError("Payload must be a mapping")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(format_validation_error(exc)) from exc


def _resolve_configuration(year: int | None) -> YearConfiguration:
    return load_year_configuration(year if year is not None else default_year())


def _build_response(
    calculator: str,
    config: YearConfiguration,
    translator: Translator,
    *,
    summary: dict[str, Any],
    details: list[dict[str, Any]],
    chart: list[tuple[str, float]],
    warnings: tuple[str, ...],
) -> dict[str, Any]:
    for warning in warnings:
        _LOGGER.info("%s calculation warning: %s", calculator, warning)

    response_model = CalculationResponse.model_validate(
        {
            "summary": summary,
            "details": details,
            "chart": [
                {
                    "category": category,
                    "label": translator(f"{calculator}.chart.{category}"),
                    "amount": round_currency(amount),
                }
                for category, amount in chart
            ],
            "warnings": list(warnings),
            "meta": {
                "calculator": calculator,
                "year": config.year,
                "locale": translator.locale,
                "currency": config.currency,
            },
        }
    )
    return response_model.model_dump(mode="json", exclude_none=True)


def _with_labels(
    calculator: str, translator: Translator, values: dict[str, Any], labelled: tuple[str, ...]
) -> dict[str, Any]:
    values["labels"] = translator.labels(f"{calculator}.summary", labelled)
    return values


def _normalise_loan(request: LoanRequest) -> LoanParameters:
    if request.principal is not None:
        principal = request.principal
    elif request.property_price is not None:
        principal = loan_amount_from_price(request.property_price, request.loan_margin_percent)
    else:
        principal = 0.0
    return LoanParameters(
        principal=principal,
        annual_interest_rate_percent=request.annual_interest_rate_percent,
        term_years=request.term_years,
        extra_monthly_payment=request.extra_monthly_payment,
    )


def calculate_loan(payload: Mapping[str, Any] | LoanRequest) -> dict[str, Any]:
    """Compute a mortgage amortization for the provided payload."""

    request_model = _validate_request(LoanRequest, payload)
    timings: dict[str, float] | None = {} if _profiling_enabled() else None

    config = _resolve_configuration(request_model.year)
    translator = get_translator(request_model.locale)

    with _profile_section("normalise_payload", timings):
        params = _normalise_loan(request_model)
    with _profile_section("amortization", timings):
        outcome = compute_loan(params, config.loan)
    _log_timings("calculate_loan", timings)

    result = outcome.result
    years_earlier, months_earlier = result.payoff_earlier
    summary = _with_labels(
        "loan",
        translator,
        {
            "principal": round_currency(result.principal),
            "base_payment": round_currency(result.base_payment),
            "total_monthly_payment": round_currency(result.total_monthly_payment),
            "months_to_payoff": result.months_to_payoff,
            "total_interest": round_currency(result.total_interest),
            "interest_saved": round_currency(result.interest_saved),
            "months_saved": result.months_saved,
            "payoff_earlier": {"years": years_earlier, "months": months_earlier},
            "baseline_months": result.baseline_months,
            "baseline_total_interest": round_currency(result.baseline_total_interest),
        },
        (
            "principal",
            "base_payment",
            "total_monthly_payment",
            "months_to_payoff",
            "total_interest",
            "interest_saved",
            "months_saved",
        ),
    )

    schedule_label = translator("loan.details.schedule")
    details = [
        {
            "category": "schedule",
            "label": f"{schedule_label} {entry.month}",
            "month": entry.month,
            "principal": round_currency(entry.principal),
            "interest": round_currency(entry.interest),
            "total": round_currency(entry.total),
            "balance": round_currency(entry.balance),
        }
        for entry in sample_schedule(result.schedule)
    ]

    chart = [
        ("principal", result.principal if not result.is_empty else 0.0),
        ("interest", result.total_interest),
    ]

    return _build_response(
        "loan",
        config,
        translator,
        summary=summary,
        details=details,
        chart=chart,
        warnings=outcome.warnings,
    )


def _format_bracket_label(lower: float, upper: float | None, rate: float) -> str:
    if upper is None:
        return f"{lower:,.0f}+ @ {format_percentage(rate)}"
    return f"{lower:,.0f} - {upper:,.0f} @ {format_percentage(rate)}"


def calculate_income_tax(payload: Mapping[str, Any] | TaxRequest) -> dict[str, Any]:
    """Compute income tax and take-home pay for the provided payload."""

    request_model = _validate_request(TaxRequest, payload)
    timings: dict[str, float] | None = {} if _profiling_enabled() else None

    config = _resolve_configuration(request_model.year)
    translator = get_translator(request_model.locale)

    with _profile_section("normalise_payload", timings):
        salary = request_model.salary
        contributions = request_model.contributions
        payroll = PayrollInput(
            basic_salary=salary.basic_salary,
            allowances=salary.allowances,
            commission=salary.commission,
            overtime=salary.overtime,
            bonus=salary.bonus,
            voluntary_epf=contributions.voluntary_epf,
        )
        reliefs = dict(request_model.reliefs.model_dump())
        reliefs["prs"] = contributions.prs
        reliefs["life_insurance"] = contributions.life_insurance

    with _profile_section("income_tax", timings):
        outcome = compute_salary_tax(
            payroll,
            reliefs,
            config.tax,
            residency=request_model.residency,
            gross_annual_income=request_model.gross_annual_income,
        )
    _log_timings("calculate_income_tax", timings)

    result = outcome.result
    tax = result.tax
    payroll_summary = result.payroll

    summary = _with_labels(
        "tax",
        translator,
        {
            "residency": tax.residency,
            "gross_annual_income": round_currency(tax.gross_annual_income),
            "total_reliefs": round_currency(tax.total_reliefs),
            "chargeable_income": round_currency(tax.chargeable_income),
            "gross_tax": round_currency(tax.gross_tax),
            "annual_tax": tax.annual_tax,
            "monthly_tax": tax.monthly_tax,
            "effective_tax_rate": round_rate(tax.effective_rate),
            "take_home_pay": round_currency(result.take_home_pay),
            "total_epf_contribution": round_currency(payroll_summary.total_epf_contribution),
        },
        (
            "gross_annual_income",
            "total_reliefs",
            "chargeable_income",
            "annual_tax",
            "monthly_tax",
            "effective_tax_rate",
            "take_home_pay",
            "total_epf_contribution",
        ),
    )

    details: list[dict[str, Any]] = [
        {
            "category": "bracket",
            "label": _format_bracket_label(entry.lower, entry.upper, entry.rate),
            "lower": entry.lower,
            "upper": entry.upper,
            "taxable_amount": round_currency(entry.taxable_amount),
            "rate": entry.rate,
            "tax": round_currency(entry.tax),
        }
        for entry in tax.brackets
    ]
    details.extend(
        {
            "category": "relief",
            "label": translator(f"tax.details.relief.{entry.relief_id}", entry.label),
            "relief_id": entry.relief_id,
            "entered": round_currency(entry.entered),
            "applied": round_currency(entry.applied),
            "cap": entry.cap,
        }
        for entry in tax.reliefs
    )

    chart = [
        ("net_income", result.annual_net_income),
        ("annual_tax", float(tax.annual_tax)),
        ("employee_epf", payroll_summary.annual_employee_epf),
        ("employer_epf", payroll_summary.annual_employer_epf),
        ("voluntary_epf", payroll_summary.annual_voluntary_epf),
    ]

    return _build_response(
        "tax",
        config,
        translator,
        summary=summary,
        details=details,
        chart=chart,
        warnings=outcome.warnings,
    )


def _normalise_options(options: InsuranceOptionsInput) -> InsuranceOptions:
    fields = set(InsuranceOptions.model_fields)
    return InsuranceOptions.model_validate(options.model_dump(include=fields))


def _require_segment(segment: str, config: YearConfiguration) -> str:
    resolved = resolve_segment(segment, config.insurance)
    if resolved is None:
        supported = ", ".join(config.insurance.segment_rates)
        raise ValueError(f"Unknown vehicle segment '{segment}' (expected one of: {supported})")
    return resolved


def _insurance_summary(result: InsuranceResult) -> dict[str, Any]:
    return {
        "segment": result.segment,
        "coverage": result.coverage,
        "sum_insured": round_currency(result.sum_insured),
        "own_damage_before_loadings": round_currency(result.own_damage_base),
        "own_damage_after_loadings": round_currency(result.own_damage_loaded),
        "own_damage_premium": round_currency(result.own_damage_after_ncd),
        "ncd_percent": result.ncd_percent,
        "third_party_premium": round_currency(result.third_party_premium),
        "add_on_premium": round_currency(result.add_on_premium),
        "pre_tax_total": round_currency(result.pre_tax_total),
        "minimum_premium_applied": result.minimum_premium_applied,
        "service_tax": round_currency(result.service_tax),
        "stamp_duty": round_currency(result.stamp_duty),
        "final_payable": round_currency(result.final_payable),
        "monthly_payable": round_currency(result.monthly_payable),
    }


def calculate_insurance(payload: Mapping[str, Any] | InsuranceRequest) -> dict[str, Any]:
    """Price a motor insurance policy for the provided payload."""

    request_model = _validate_request(InsuranceRequest, payload)
    timings: dict[str, float] | None = {} if _profiling_enabled() else None

    config = _resolve_configuration(request_model.year)
    translator = get_translator(request_model.locale)

    with _profile_section("normalise_payload", timings):
        options = _normalise_options(request_model)
        insurance_input = InsuranceInput(
            vehicle_price=request_model.vehicle_price,
            segment=_require_segment(request_model.segment, config),
            body_type=request_model.body_type,
            **options.model_dump(),
        )
    with _profile_section("premium", timings):
        outcome = compute_insurance_premium(insurance_input, config.insurance)
    _log_timings("calculate_insurance", timings)

    result = outcome.result
    summary = _with_labels(
        "insurance",
        translator,
        _insurance_summary(result),
        (
            "sum_insured",
            "own_damage_premium",
            "third_party_premium",
            "add_on_premium",
            "pre_tax_total",
            "service_tax",
            "stamp_duty",
            "final_payable",
        ),
    )

    loading_label = translator("insurance.details.loading")
    details = [
        {
            "category": "loading",
            "label": f"{loading_label}: {loading.name}",
            "name": loading.name,
            "key": loading.key,
            "factor": loading.factor,
        }
        for loading in result.loadings
    ]

    chart = [
        ("own_damage", result.own_damage_after_ncd),
        ("third_party", result.third_party_premium),
        ("add_ons", result.add_on_premium),
        ("service_tax", result.service_tax),
        ("stamp_duty", result.stamp_duty),
    ]

    return _build_response(
        "insurance",
        config,
        translator,
        summary=summary,
        details=details,
        chart=chart,
        warnings=outcome.warnings,
    )


def calculate_car_ownership(payload: Mapping[str, Any] | CarOwnershipRequest) -> dict[str, Any]:
    """Estimate the monthly cost of owning a car for the provided payload."""

    request_model = _validate_request(CarOwnershipRequest, payload)
    timings: dict[str, float] | None = {} if _profiling_enabled() else None

    config = _resolve_configuration(request_model.year)
    translator = get_translator(request_model.locale)

    with _profile_section("normalise_payload", timings):
        car_input = CarOwnershipInput(
            vehicle_price=request_model.vehicle_price,
            segment=_require_segment(request_model.segment, config),
            body_type=request_model.body_type,
            purchase_type=request_model.purchase_type,
            down_payment_percent=request_model.down_payment_percent,
            interest_rate_percent=request_model.interest_rate_percent,
            loan_period_years=request_model.loan_period_years,
            engine_cc=request_model.engine_cc,
            monthly_mileage=request_model.monthly_mileage,
            insurance=_normalise_options(request_model.insurance),
        )
    with _profile_section("ownership", timings):
        outcome = compute_car_ownership(car_input, config.insurance, config.vehicle)
    _log_timings("calculate_car_ownership", timings)

    result = outcome.result
    summary = {
        "purchase_type": result.purchase_type,
        "total_monthly_cost": round_currency(result.total_monthly_cost),
        "down_payment": round_currency(result.down_payment),
        "loan_amount": round_currency(result.loan_amount),
        "annual_road_tax": round_currency(result.annual_road_tax),
        "fuel_efficiency": round_currency(result.fuel_efficiency),
        **{
            f"monthly_{name}": round_currency(amount)
            for name, amount in result.components.items()
        },
    }
    summary = _with_labels(
        "car",
        translator,
        summary,
        ("total_monthly_cost", "down_payment", "loan_amount", "annual_road_tax", "fuel_efficiency"),
    )

    details = [
        {
            "category": "insurance",
            "label": translator("car.chart.insurance"),
            **_insurance_summary(result.insurance),
        }
    ]
    chart = list(result.components.items())

    return _build_response(
        "car",
        config,
        translator,
        summary=summary,
        details=details,
        chart=chart,
        warnings=outcome.warnings,
    )


__all__ = [
    "calculate_car_ownership",
    "calculate_income_tax",
    "calculate_insurance",
    "calculate_loan",
]
