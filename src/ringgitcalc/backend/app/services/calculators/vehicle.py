"""Monthly cost of owning a car: financing, insurance, road tax and running costs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ringgitcalc.backend.app.models import CarOwnershipInput
from ringgitcalc.backend.config.year_config import (
    InsuranceConfig,
    RoadTaxBand,
    VehicleConfig,
    VehicleSegment,
)

from .insurance import InsuranceResult, compute_insurance_premium
from .loan import compute_base_payment
from .utils import CalculationOutcome


@dataclass(frozen=True)
class CarOwnershipResult:
    """Monthly cost components of a car purchase."""

    vehicle_price: float
    purchase_type: str
    down_payment: float
    loan_amount: float
    monthly_loan_payment: float
    monthly_insurance: float
    monthly_road_tax: float
    monthly_servicing: float
    monthly_fuel: float
    annual_road_tax: float
    fuel_efficiency: float
    insurance: InsuranceResult

    @property
    def total_monthly_cost(self) -> float:
        return (
            self.monthly_loan_payment
            + self.monthly_insurance
            + self.monthly_road_tax
            + self.monthly_servicing
            + self.monthly_fuel
        )

    @property
    def components(self) -> dict[str, float]:
        return {
            "loan_payment": self.monthly_loan_payment,
            "insurance": self.monthly_insurance,
            "road_tax": self.monthly_road_tax,
            "servicing": self.monthly_servicing,
            "fuel": self.monthly_fuel,
        }


def calculate_road_tax(engine_cc: float, bands: Sequence[RoadTaxBand]) -> float:
    """Return the annual road tax for ``engine_cc``.

    Each band charges its ``base`` plus ``rate_per_cc`` for every cc above the
    previous band's upper bound.
    """

    lower = 0.0
    for band in bands:
        if band.upper_cc is None or engine_cc <= band.upper_cc:
            return band.base + band.rate_per_cc * max(engine_cc - lower, 0.0)
        lower = band.upper_cc
    return 0.0


def fuel_efficiency(segment: VehicleSegment, body_type: str | None, config: VehicleConfig) -> float:
    """Return km per litre for ``segment`` adjusted by body type, never below the minimum."""

    adjusted = segment.fuel_efficiency * config.body_type_efficiency.factor_for(body_type)
    return max(adjusted, config.minimum_fuel_efficiency)


def resolve_vehicle_segment(segment: str, config: VehicleConfig) -> str | None:
    if segment in config.segments:
        return segment
    wanted = segment.strip().lower()
    for key in config.segments:
        if key.lower() == wanted:
            return key
    return None


def _policy_warnings(car_input: CarOwnershipInput, config: VehicleConfig) -> list[str]:
    warnings: list[str] = []
    if config.max_monthly_mileage is not None and car_input.monthly_mileage > config.max_monthly_mileage:
        warnings.append(
            f"Monthly mileage of {car_input.monthly_mileage:g} km exceeds {config.max_monthly_mileage:g} km"
        )
    if not car_input.is_financed:
        return warnings

    bounds = config.down_payment_percent_range
    if bounds is not None and not bounds[0] <= car_input.down_payment_percent <= bounds[1]:
        warnings.append(
            f"Down payment percentage must be between {bounds[0]:g}% and {bounds[1]:g}%"
        )
    if config.max_loan_rate_percent is not None and car_input.interest_rate_percent > config.max_loan_rate_percent:
        warnings.append(f"Interest rate exceeds {config.max_loan_rate_percent:g}%")
    if config.max_loan_period_years is not None and car_input.loan_period_years > config.max_loan_period_years:
        warnings.append(f"Loan period exceeds {config.max_loan_period_years:g} years")
    return warnings


def compute_car_ownership(
    car_input: CarOwnershipInput,
    insurance_config: InsuranceConfig,
    vehicle_config: VehicleConfig,
) -> CalculationOutcome[CarOwnershipResult]:
    """Estimate the monthly cost of owning the vehicle described by ``car_input``."""

    warnings = _policy_warnings(car_input, vehicle_config)
    price = max(car_input.vehicle_price, 0.0)

    if car_input.is_financed:
        down_payment = price * (car_input.down_payment_percent / 100)
        loan_amount = max(price - down_payment, 0.0)
        monthly_loan = 0.0
        if loan_amount > 0 and car_input.interest_rate_percent > 0 and car_input.loan_period_years > 0:
            monthly_loan = compute_base_payment(
                loan_amount, car_input.interest_rate_percent, car_input.loan_period_years
            )
    else:
        down_payment = price
        loan_amount = 0.0
        monthly_loan = 0.0

    insurance_outcome = compute_insurance_premium(car_input.insurance_input(), insurance_config)
    warnings.extend(insurance_outcome.warnings)
    insurance = insurance_outcome.result

    annual_road_tax = calculate_road_tax(car_input.engine_cc, vehicle_config.road_tax_bands)

    segment_key = resolve_vehicle_segment(car_input.segment, vehicle_config)
    if segment_key is None:
        servicing = 0.0
        efficiency = vehicle_config.minimum_fuel_efficiency
        if price > 0:
            warnings.append(
                f"Unknown vehicle segment '{car_input.segment}'; servicing not estimated"
            )
    else:
        segment = vehicle_config.segments[segment_key]
        servicing = price * segment.servicing_rate / 12
        efficiency = fuel_efficiency(segment, car_input.body_type, vehicle_config)

    monthly_fuel = car_input.monthly_mileage / efficiency * vehicle_config.fuel_price_per_litre

    result = CarOwnershipResult(
        vehicle_price=price,
        purchase_type=car_input.purchase_type,
        down_payment=down_payment,
        loan_amount=loan_amount,
        monthly_loan_payment=monthly_loan,
        monthly_insurance=insurance.final_payable / 12,
        monthly_road_tax=annual_road_tax / 12,
        monthly_servicing=servicing,
        monthly_fuel=monthly_fuel,
        annual_road_tax=annual_road_tax,
        fuel_efficiency=efficiency,
        insurance=insurance,
    )
    return CalculationOutcome(result, tuple(warnings))


__all__ = [
    "CarOwnershipResult",
    "calculate_road_tax",
    "compute_car_ownership",
    "fuel_efficiency",
    "resolve_vehicle_segment",
]
