"""REST endpoints for the loan, tax, insurance and car calculators."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from flask import Blueprint, request

from ringgitcalc.backend.app.services.calculation_service import (
    calculate_car_ownership,
    calculate_income_tax,
    calculate_insurance,
    calculate_loan,
)
from ringgitcalc.backend.services.request_parser import parse_calculation_payload
from ringgitcalc.backend.services.response_builder import build_calculation_response

from .history import current_history

blueprint = Blueprint("calculations", __name__, url_prefix="/api/v1/calculations")


def _run(
    calculator: str, handler: Callable[[Mapping[str, Any]], dict[str, Any]]
) -> tuple[Any, int]:
    payload = parse_calculation_payload(request)
    result = handler(payload)
    current_history().record(calculator, payload, result)
    return build_calculation_response(result)


@blueprint.post("/loan")
def create_loan_calculation() -> tuple[Any, int]:
    """Amortize a mortgage, optionally with extra monthly payments."""

    return _run("loan", calculate_loan)


@blueprint.post("/tax")
def create_tax_calculation() -> tuple[Any, int]:
    """Assess income tax, reliefs and take-home pay."""

    return _run("tax", calculate_income_tax)


@blueprint.post("/insurance")
def create_insurance_calculation() -> tuple[Any, int]:
    """Quote an annual motor insurance premium."""

    return _run("insurance", calculate_insurance)


@blueprint.post("/car")
def create_car_calculation() -> tuple[Any, int]:
    """Estimate the monthly cost of owning a car."""

    return _run("car", calculate_car_ownership)
