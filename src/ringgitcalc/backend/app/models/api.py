"""Pydantic models describing the public API surface."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

__all__ = [
    "LoanRequest",
    "SalaryInput",
    "ContributionsInput",
    "ReliefsInput",
    "TaxRequest",
    "InsuranceOptionsInput",
    "InsuranceRequest",
    "CarOwnershipRequest",
    "ChartPoint",
    "DetailEntry",
    "ResponseMeta",
    "CalculationResponse",
    "format_validation_error",
    "normalise_coverage",
    "normalise_residency",
]


_RESIDENCY_ALIASES = {
    "resident": "resident",
    "non_resident": "non_resident",
    "nonresident": "non_resident",
}

_COVERAGE_ALIASES = {
    "comprehensive": "comprehensive",
    "third_party": "third_party",
    "thirdparty": "third_party",
}


def _canonical_key(value: str) -> str:
    return value.strip().lower().replace("-", "_").replace(" ", "_")


def normalise_residency(value: Any) -> str:
    """Map user supplied residency spellings onto ``resident``/``non_resident``."""

    if value is None:
        return "resident"
    key = _canonical_key(str(value))
    try:
        return _RESIDENCY_ALIASES[key]
    except KeyError:
        raise ValueError(f"Unsupported residency '{value}'") from None


def normalise_coverage(value: Any) -> str:
    """Map coverage spellings such as ``thirdparty`` onto canonical values."""

    if value is None:
        return "comprehensive"
    key = _canonical_key(str(value))
    try:
        return _COVERAGE_ALIASES[key]
    except KeyError:
        raise ValueError(f"Unsupported coverage '{value}'") from None


class _CalculationRequest(BaseModel):
    """Fields shared by every calculation request."""

    model_config = ConfigDict(extra="forbid")

    year: int | None = Field(default=None, ge=2000, le=2100)
    locale: str = "en"


class LoanRequest(_CalculationRequest):
    """Mortgage request: either a principal or a property price plus margin."""

    principal: float | None = Field(default=None, ge=0)
    property_price: float | None = Field(default=None, ge=0)
    loan_margin_percent: float = Field(default=90.0, ge=0, le=100)
    annual_interest_rate_percent: float = Field(default=0.0, ge=0)
    term_years: float = Field(default=0.0, ge=0)
    extra_monthly_payment: float = Field(default=0.0, ge=0)

    @model_validator(mode="after")
    def _reject_conflicting_amounts(self) -> "LoanRequest":
        if self.principal is not None and self.property_price is not None:
            raise ValueError("Provide either principal or property_price, not both")
        return self


class SalaryInput(BaseModel):
    """Monthly salary components and the annual bonus."""

    model_config = ConfigDict(extra="forbid")

    basic_salary: float = Field(default=0.0, ge=0)
    allowances: float = Field(default=0.0, ge=0)
    commission: float = Field(default=0.0, ge=0)
    overtime: float = Field(default=0.0, ge=0)
    bonus: float = Field(default=0.0, ge=0)


class ContributionsInput(BaseModel):
    """Voluntary retirement and insurance contributions."""

    model_config = ConfigDict(extra="forbid")

    voluntary_epf: float = Field(default=0.0, ge=0, description="Monthly amount")
    prs: float = Field(default=0.0, ge=0)
    life_insurance: float = Field(default=0.0, ge=0)


class ReliefsInput(BaseModel):
    """Annual relief claims as entered by the taxpayer."""

    model_config = ConfigDict(extra="forbid")

    spouse: float = Field(default=0.0, ge=0)
    children: float = Field(default=0.0, ge=0)
    parents: float = Field(default=0.0, ge=0)
    disabled: float = Field(default=0.0, ge=0)
    lifestyle: float = Field(default=0.0, ge=0)
    education: float = Field(default=0.0, ge=0)
    medical: float = Field(default=0.0, ge=0)
    zakat: float = Field(default=0.0, ge=0)
    donations: float = Field(default=0.0, ge=0)


class TaxRequest(_CalculationRequest):
    """Income tax request built from salary, contributions and reliefs."""

    residency: str = "resident"
    salary: SalaryInput = Field(default_factory=SalaryInput)
    contributions: ContributionsInput = Field(default_factory=ContributionsInput)
    reliefs: ReliefsInput = Field(default_factory=ReliefsInput)
    gross_annual_income: float | None = Field(default=None, ge=0)

    @field_validator("residency", mode="before")
    @classmethod
    def _normalise_residency(cls, value: Any) -> str:
        return normalise_residency(value)


class InsuranceOptionsInput(BaseModel):
    """Policy options shared by the insurance and car ownership requests."""

    model_config = ConfigDict(extra="forbid")

    vehicle_age_years: int = Field(default=0, ge=0, le=60)
    driver_age_band: str | None = None
    ncd_percent: float = Field(default=0.0, ge=0, le=100)
    coverage: Literal["comprehensive", "third_party"] = "comprehensive"
    region: str | None = None
    ownership: Literal["private", "company"] = "private"
    include_flood: bool = False
    include_windscreen: bool = False

    @field_validator("coverage", mode="before")
    @classmethod
    def _normalise_coverage(cls, value: Any) -> str:
        return normalise_coverage(value)

    @field_validator("ownership", mode="before")
    @classmethod
    def _normalise_ownership(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("include_flood", "include_windscreen", mode="before")
    @classmethod
    def _coerce_flags(cls, value: Any) -> bool:
        if value is None:
            return False
        return bool(value)


class InsuranceRequest(InsuranceOptionsInput):
    """Motor insurance quote request."""

    year: int | None = Field(default=None, ge=2000, le=2100)
    locale: str = "en"
    vehicle_price: float = Field(..., ge=0)
    segment: str
    body_type: str | None = None


class CarOwnershipRequest(_CalculationRequest):
    """Monthly car ownership cost request."""

    vehicle_price: float = Field(..., ge=0)
    segment: str
    body_type: str | None = None
    purchase_type: Literal["loan", "cash"] = "loan"
    down_payment_percent: float = Field(default=10.0, ge=0, le=100)
    interest_rate_percent: float = Field(default=0.0, ge=0)
    loan_period_years: float = Field(default=0.0, ge=0)
    engine_cc: int = Field(default=1000, ge=0)
    monthly_mileage: float = Field(default=0.0, ge=0)
    insurance: InsuranceOptionsInput = Field(default_factory=InsuranceOptionsInput)

    @model_validator(mode="before")
    @classmethod
    def _default_cash_down_payment(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        if data.get("purchase_type") == "cash" and "down_payment_percent" not in data:
            copied = dict(data)
            copied["down_payment_percent"] = 100.0
            return copied
        return data


class ChartPoint(BaseModel):
    """Labelled amount that a client may plot."""

    model_config = ConfigDict(extra="forbid")

    category: str
    label: str
    amount: float


class DetailEntry(BaseModel):
    """Flexible structure for detailed line items in the response."""

    model_config = ConfigDict(extra="allow")

    category: str
    label: str


class ResponseMeta(BaseModel):
    """Metadata returned alongside the calculation output."""

    model_config = ConfigDict(extra="forbid")

    calculator: str
    year: int
    locale: str
    currency: str = "RM"


class CalculationResponse(BaseModel):
    """Full response payload produced by the calculation service."""

    model_config = ConfigDict(extra="forbid")

    summary: dict[str, Any]
    details: list[DetailEntry] = Field(default_factory=list)
    chart: list[ChartPoint] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    meta: ResponseMeta


def format_validation_error(error: ValidationError) -> str:
    """Return a concise human-readable description of validation issues."""

    messages: list[str] = []
    for issue in error.errors():
        location = ".".join(str(part) for part in issue.get("loc", ()))
        message = issue.get("msg", "Invalid value")
        if "greater than or equal to 0" in message.lower():
            message = "value cannot be negative"
        if location:
            messages.append(f"{location}: {message}")
        else:
            messages.append(message)

    details = "; ".join(messages) if messages else str(error)
    return f"Invalid calculation payload: {details}"
