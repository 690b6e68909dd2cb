"""Typed inputs shared across the calculation services.

Request payloads are validated by the Pydantic models in :mod:`.api` and then
normalised into the frozen inputs below. The calculators only ever see these
immutable inputs, never raw request data or ambient state, which keeps each
computation a pure function of its arguments.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .api import (
    CalculationResponse,
    CarOwnershipRequest,
    ChartPoint,
    ContributionsInput,
    DetailEntry,
    InsuranceOptionsInput,
    InsuranceRequest,
    LoanRequest,
    ReliefsInput,
    ResponseMeta,
    SalaryInput,
    TaxRequest,
    format_validation_error,
    normalise_coverage,
    normalise_residency,
)

Residency = Literal["resident", "non_resident"]
Coverage = Literal["comprehensive", "third_party"]
PurchaseType = Literal["loan", "cash"]

__all__ = [
    "CalculationResponse",
    "CarOwnershipInput",
    "CarOwnershipRequest",
    "ChartPoint",
    "ContributionsInput",
    "Coverage",
    "DetailEntry",
    "InsuranceInput",
    "InsuranceOptions",
    "InsuranceOptionsInput",
    "InsuranceRequest",
    "LoanParameters",
    "LoanRequest",
    "PayrollInput",
    "PurchaseType",
    "ReliefsInput",
    "Residency",
    "ResponseMeta",
    "SalaryInput",
    "TaxInput",
    "TaxRequest",
    "format_validation_error",
    "normalise_coverage",
    "normalise_residency",
]


class _FrozenInput(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class LoanParameters(_FrozenInput):
    """Principal, annual rate (percent), term (years) and extra monthly payment."""

    principal: float = 0.0
    annual_interest_rate_percent: float = 0.0
    term_years: float = 0.0
    extra_monthly_payment: float = 0.0


class PayrollInput(_FrozenInput):
    """Monthly salary components plus the annual bonus."""

    basic_salary: float = 0.0
    allowances: float = 0.0
    commission: float = 0.0
    overtime: float = 0.0
    bonus: float = 0.0
    voluntary_epf: float = 0.0

    @property
    def monthly_gross(self) -> float:
        return self.basic_salary + self.allowances + self.commission + self.overtime

    @property
    def annual_gross(self) -> float:
        return self.monthly_gross * 12 + self.bonus


class TaxInput(_FrozenInput):
    """Gross annual income, residency class and the raw relief claims."""

    gross_annual_income: float = 0.0
    residency: Residency = "resident"
    reliefs: Mapping[str, float] = Field(default_factory=dict)

    @property
    def is_resident(self) -> bool:
        return self.residency == "resident"


class InsuranceOptions(_FrozenInput):
    """Policy options that do not depend on the vehicle itself."""

    vehicle_age_years: int = 0
    driver_age_band: str | None = None
    ncd_percent: float = 0.0
    coverage: Coverage = "comprehensive"
    region: str | None = None
    ownership: str = "private"
    include_flood: bool = False
    include_windscreen: bool = False


class InsuranceInput(InsuranceOptions):
    """Everything the premium pricer needs for a single quote."""

    vehicle_price: float = 0.0
    segment: str = ""
    body_type: str | None = None


class CarOwnershipInput(_FrozenInput):
    """Inputs of the monthly car ownership cost estimate."""

    vehicle_price: float = 0.0
    segment: str = ""
    body_type: str | None = None
    purchase_type: PurchaseType = "loan"
    down_payment_percent: float = 0.0
    interest_rate_percent: float = 0.0
    loan_period_years: float = 0.0
    engine_cc: int = 1000
    monthly_mileage: float = 0.0
    insurance: InsuranceOptions = Field(default_factory=InsuranceOptions)

    @property
    def is_financed(self) -> bool:
        return self.purchase_type == "loan"

    def insurance_input(self) -> InsuranceInput:
        return InsuranceInput(
            vehicle_price=self.vehicle_price,
            segment=self.segment,
            body_type=self.body_type,
            **self.insurance.model_dump(),
        )
