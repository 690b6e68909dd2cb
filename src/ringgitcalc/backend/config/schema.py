"""Pydantic models describing the rate table configuration schema."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    computed_field,
    field_validator,
    model_validator,
)
from typing_extensions import Self


class ConfigurationError(ValueError):
    """Raised when configuration values violate schema expectations."""


class ImmutableModel(BaseModel):
    """Base class that freezes instances and rejects unknown fields."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


def _coerce_float_mapping(value: Any, *, label: str) -> Mapping[str, float]:
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return {str(key): float(val) for key, val in value.items()}
    raise ConfigurationError(f"{label} must be provided as a mapping")


class TaxBracket(ImmutableModel):
    """Represents a single progressive tax bracket.

    Only the upper bound is stored; the lower bound is the previous bracket's
    upper bound (or zero for the first bracket).
    """

    upper_bound: float | None = Field(default=None, alias="upper")
    rate: float

    @model_validator(mode="after")
    def _validate_values(self) -> TaxBracket:
        if self.rate < 0 or self.rate > 1:
            raise ConfigurationError("Tax rates must be between 0 and 1")
        if self.upper_bound is not None and self.upper_bound <= 0:
            raise ConfigurationError("Upper bounds must be positive values")
        return self


class ReliefRule(ImmutableModel):
    """A named relief with an optional statutory cap."""

    label: str
    cap: float | None = None

    @model_validator(mode="after")
    def _validate_cap(self) -> ReliefRule:
        if self.cap is not None and self.cap < 0:
            raise ConfigurationError("Relief caps must be non-negative")
        return self


class ReliefGroup(ImmutableModel):
    """Reliefs that share a single joint cap (e.g. voluntary contributions)."""

    label: str
    members: Sequence[str]
    cap: float

    @field_validator("members", mode="before")
    @classmethod
    def _coerce_members(cls, value: Any) -> Sequence[str]:
        if isinstance(value, str):
            return (value,)
        if isinstance(value, Sequence):
            return tuple(str(item) for item in value)
        raise ConfigurationError("Relief group members must be a list of identifiers")

    @model_validator(mode="after")
    def _validate_group(self) -> ReliefGroup:
        if not self.members:
            raise ConfigurationError("Relief groups require at least one member")
        if self.cap < 0:
            raise ConfigurationError("Relief group caps must be non-negative")
        return self


class PayrollConfig(ImmutableModel):
    """Statutory payroll deductions used to derive take-home pay."""

    employee_epf_rate: float = 0.11
    employer_epf_rate: float = 0.12
    plausible_limits: Mapping[str, float] = Field(default_factory=dict)

    @field_validator("plausible_limits", mode="before")
    @classmethod
    def _coerce_limits(cls, value: Any) -> Mapping[str, float]:
        return _coerce_float_mapping(value, label="Payroll plausibility limits")


class TaxConfig(ImmutableModel):
    """Income tax brackets, reliefs and the non-resident flat rate."""

    brackets: Sequence[TaxBracket]
    non_resident_rate: float
    personal_relief: float
    reliefs: Mapping[str, ReliefRule]
    relief_groups: Mapping[str, ReliefGroup] = Field(default_factory=dict)
    payroll: PayrollConfig = Field(default_factory=PayrollConfig)

    @model_validator(mode="after")
    def _validate_tax(self) -> TaxConfig:
        if not self.brackets:
            raise ConfigurationError("At least one tax bracket must be defined")
        last_upper: float | None = None
        for bracket in self.brackets[:-1]:
            upper = bracket.upper_bound
            if upper is None:
                raise ConfigurationError("Only the final tax bracket may be open-ended")
            if last_upper is not None and upper <= last_upper:
                raise ConfigurationError("Tax brackets must be in ascending order")
            last_upper = upper
        final_upper = self.brackets[-1].upper_bound
        if final_upper is not None:
            raise ConfigurationError("Final tax bracket must have an open upper bound")
        if self.non_resident_rate < 0 or self.non_resident_rate > 1:
            raise ConfigurationError("Non-resident rate must be between 0 and 1")
        if self.personal_relief < 0:
            raise ConfigurationError("Personal relief must be non-negative")

        grouped: set[str] = set()
        for group_id, group in self.relief_groups.items():
            for member in group.members:
                if member in self.reliefs:
                    raise ConfigurationError(
                        f"Relief '{member}' cannot be both individual and part of group '{group_id}'"
                    )
                if member in grouped:
                    raise ConfigurationError(
                        f"Relief '{member}' is declared in more than one group"
                    )
                grouped.add(member)
        return self

    @property
    def grouped_relief_ids(self) -> frozenset[str]:
        return frozenset(
            member for group in self.relief_groups.values() for member in group.members
        )


class LoanConfig(ImmutableModel):
    """Simulation limits and plausibility bounds for amortization."""

    max_months: int = 600
    balance_epsilon: float = 0.01
    plausible_rate_percent: float | None = None
    max_term_years: float | None = None

    @model_validator(mode="after")
    def _validate_limits(self) -> LoanConfig:
        if self.max_months <= 0:
            raise ConfigurationError("Loan simulation cap must be positive")
        if self.balance_epsilon <= 0:
            raise ConfigurationError("Balance epsilon must be positive")
        return self


class FactorTable(ImmutableModel):
    """Mapping from a category key to a multiplicative factor."""

    factors: Mapping[str, float] = Field(default_factory=dict)
    default: float = 1.0

    @model_validator(mode="before")
    @classmethod
    def _accept_flat_mapping(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and "factors" not in data:
            prepared = dict(data)
            default = prepared.pop("default", 1.0)
            return {"factors": prepared, "default": default}
        return data

    @field_validator("factors", mode="before")
    @classmethod
    def _coerce_factors(cls, value: Any) -> Mapping[str, float]:
        return _coerce_float_mapping(value, label="Factor tables")

    def factor_for(self, key: str | None) -> float:
        if key is None:
            return self.default
        return self.factors.get(str(key).strip().lower(), self.default)


class InsuranceLoadings(ImmutableModel):
    """Own damage loadings, applied in declaration order."""

    driver_age: FactorTable = Field(default_factory=FactorTable)
    region: FactorTable = Field(default_factory=FactorTable)
    body_type: FactorTable = Field(default_factory=FactorTable)
    ownership: FactorTable = Field(default_factory=FactorTable)


class AddOnConfig(ImmutableModel):
    """Optional comprehensive cover extensions."""

    flood_rate: float
    windscreen_value_rate: float
    windscreen_value_cap: float
    windscreen_rate: float


class InsuranceConfig(ImmutableModel):
    """Motor insurance tariff used by the premium pricer."""

    segment_rates: Mapping[str, float]
    depreciation_rate_per_year: float
    max_depreciation_years: int
    minimum_sum_insured_ratio: float
    third_party_rates: Mapping[str, float]
    loadings: InsuranceLoadings = Field(default_factory=InsuranceLoadings)
    add_ons: AddOnConfig
    ncd_cap_percent: float
    minimum_premium: float
    service_tax_rate: float
    stamp_duty: float

    @field_validator("segment_rates", "third_party_rates", mode="before")
    @classmethod
    def _coerce_rates(cls, value: Any) -> Mapping[str, float]:
        return _coerce_float_mapping(value, label="Insurance rate tables")

    @model_validator(mode="after")
    def _validate_insurance(self) -> InsuranceConfig:
        if not self.segment_rates:
            raise ConfigurationError("At least one vehicle segment rate must be defined")
        for coverage in ("comprehensive", "third_party"):
            if coverage not in self.third_party_rates:
                raise ConfigurationError(
                    f"Third party rate for '{coverage}' coverage is required"
                )
        if not 0 < self.minimum_sum_insured_ratio <= 1:
            raise ConfigurationError("Minimum sum insured ratio must be within (0, 1]")
        if self.minimum_premium < 0 or self.stamp_duty < 0:
            raise ConfigurationError("Minimum premium and stamp duty must be non-negative")
        return self


class RoadTaxBand(ImmutableModel):
    """Road tax band: ``base`` plus ``rate_per_cc`` above the previous band."""

    upper_cc: float | None = Field(default=None, alias="upper")
    base: float
    rate_per_cc: float = 0.0


class VehicleSegment(ImmutableModel):
    """Running-cost profile of a vehicle segment."""

    label: str
    servicing_rate: float
    fuel_efficiency: float


class VehicleConfig(ImmutableModel):
    """Running-cost tables for the car ownership estimator."""

    segments: Mapping[str, VehicleSegment]
    road_tax_bands: Sequence[RoadTaxBand]
    fuel_price_per_litre: float
    minimum_fuel_efficiency: float
    body_type_efficiency: FactorTable = Field(default_factory=FactorTable)
    max_monthly_mileage: float | None = None
    max_loan_rate_percent: float | None = None
    max_loan_period_years: float | None = None
    down_payment_percent_range: tuple[float, float] | None = None

    @model_validator(mode="after")
    def _validate_vehicle(self) -> VehicleConfig:
        if not self.road_tax_bands:
            raise ConfigurationError("At least one road tax band must be defined")
        if self.road_tax_bands[-1].upper_cc is not None:
            raise ConfigurationError("Final road tax band must have an open upper bound")
        if self.minimum_fuel_efficiency <= 0:
            raise ConfigurationError("Minimum fuel efficiency must be positive")
        return self


class YearConfiguration(ImmutableModel):
    """Complete set of rate tables for a single year."""

    year: int
    currency: str = "RM"
    tax: TaxConfig
    loan: LoanConfig = Field(default_factory=LoanConfig)
    insurance: InsuranceConfig
    vehicle: VehicleConfig
    meta: Mapping[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _validate_year(self) -> Self:
        missing = set(self.insurance.segment_rates) ^ set(self.vehicle.segments)
        if missing:
            raise ConfigurationError(
                "Insurance and vehicle segment tables must list the same segments: "
                + ", ".join(sorted(missing))
            )
        return self


class YearManifestEntry(ImmutableModel):
    """Entry describing a supported year in the manifest."""

    year: int
    filename: str | None = None
    status: str = "active"

    @computed_field
    @property
    def resolved_filename(self) -> str:
        return self.filename or f"{self.year}.yaml"


class YearManifest(ImmutableModel):
    """Manifest describing the available rate table files."""

    years: Sequence[YearManifestEntry]

    @model_validator(mode="after")
    def _validate_years(self) -> YearManifest:
        seen: set[int] = set()
        for entry in self.years:
            if entry.year in seen:
                raise ConfigurationError(
                    f"Duplicate year {entry.year} declared in the configuration manifest"
                )
            seen.add(entry.year)
        return self

    def get_entry(self, year: int) -> YearManifestEntry:
        for entry in self.years:
            if entry.year == year:
                return entry
        raise KeyError(year)

    @computed_field
    @property
    def supported_years(self) -> tuple[int, ...]:
        return tuple(sorted(entry.year for entry in self.years))


__all__ = [
    "AddOnConfig",
    "ConfigurationError",
    "FactorTable",
    "ImmutableModel",
    "InsuranceConfig",
    "InsuranceLoadings",
    "LoanConfig",
    "PayrollConfig",
    "ReliefGroup",
    "ReliefRule",
    "RoadTaxBand",
    "TaxBracket",
    "TaxConfig",
    "ValidationError",
    "VehicleConfig",
    "VehicleSegment",
    "YearConfiguration",
    "YearManifest",
    "YearManifestEntry",
]
