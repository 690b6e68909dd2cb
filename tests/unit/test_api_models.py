"""Unit coverage for request model normalisation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from ringgitcalc.backend.app.models import (
    CarOwnershipInput,
    CarOwnershipRequest,
    InsuranceRequest,
    LoanRequest,
    TaxRequest,
    format_validation_error,
)


@pytest.mark.parametrize("raw", ["non-resident", "Non Resident", "non_resident", "NONRESIDENT"])
def test_residency_spellings(raw: str) -> None:
    assert TaxRequest.model_validate({"residency": raw}).residency == "non_resident"


def test_unknown_residency_is_rejected() -> None:
    with pytest.raises(ValidationError):
        TaxRequest.model_validate({"residency": "tourist"})


@pytest.mark.parametrize("raw", ["thirdparty", "third-party", "Third Party"])
def test_coverage_spellings(raw: str) -> None:
    request = InsuranceRequest.model_validate(
        {"vehicle_price": 50000, "segment": "A", "coverage": raw}
    )

    assert request.coverage == "third_party"


def test_negative_amounts_are_rejected_with_readable_message() -> None:
    with pytest.raises(ValidationError) as excinfo:
        TaxRequest.model_validate({"salary": {"basic_salary": -1}})

    message = format_validation_error(excinfo.value)

    assert message.startswith("Invalid calculation payload")
    assert "salary.basic_salary: value cannot be negative" in message


def test_loan_request_rejects_principal_and_price_together() -> None:
    with pytest.raises(ValidationError):
        LoanRequest.model_validate({"principal": 1, "property_price": 2})


def test_unknown_fields_are_rejected() -> None:
    with pytest.raises(ValidationError):
        LoanRequest.model_validate({"principal": 1, "interest": 3})


def test_cash_purchase_defaults_to_full_down_payment() -> None:
    request = CarOwnershipRequest.model_validate(
        {"vehicle_price": 80000, "segment": "B", "purchase_type": "cash"}
    )

    assert request.down_payment_percent == 100


def test_car_input_builds_insurance_input() -> None:
    car = CarOwnershipInput(vehicle_price=80000, segment="B", body_type="mpv")

    insurance = car.insurance_input()

    assert insurance.vehicle_price == 80000
    assert insurance.segment == "B"
    assert insurance.body_type == "mpv"
    assert insurance.coverage == "comprehensive"
