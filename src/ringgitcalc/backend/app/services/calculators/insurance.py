"""Motor insurance premium pricing.

The premium is built by a fixed pipeline: sum insured, base premium split,
own damage loadings, optional add-ons, no-claim discount, minimum premium,
service tax and stamp duty. The discount is applied to the loaded own damage
premium before add-ons are summed, so the order of the steps matters.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ringgitcalc.backend.app.models import InsuranceInput
from ringgitcalc.backend.config.year_config import InsuranceConfig

from .utils import CalculationOutcome, clamp


@dataclass(frozen=True)
class LoadingFactor:
    """Multiplier applied to the own damage premium."""

    name: str
    key: str | None
    factor: float


@dataclass(frozen=True)
class InsuranceResult:
    """Every intermediate figure of the premium pipeline."""

    vehicle_price: float
    segment: str
    coverage: str
    sum_insured: float = 0.0
    segment_rate: float | None = None
    own_damage_base: float = 0.0
    own_damage_loaded: float = 0.0
    own_damage_after_ncd: float = 0.0
    ncd_percent: float = 0.0
    third_party_premium: float = 0.0
    flood_premium: float = 0.0
    windscreen_premium: float = 0.0
    pre_tax_total: float = 0.0
    minimum_premium_applied: bool = False
    premium: float = 0.0
    service_tax: float = 0.0
    stamp_duty: float = 0.0
    final_payable: float = 0.0
    loadings: tuple[LoadingFactor, ...] = field(default_factory=tuple)

    @property
    def add_on_premium(self) -> float:
        return self.flood_premium + self.windscreen_premium

    @property
    def ncd_amount(self) -> float:
        return self.own_damage_loaded - self.own_damage_after_ncd

    @property
    def is_empty(self) -> bool:
        return self.final_payable == 0

    @property
    def monthly_payable(self) -> float:
        return self.final_payable / 12


def compute_sum_insured(vehicle_price: float, vehicle_age_years: int, config: InsuranceConfig) -> float:
    """Depreciate ``vehicle_price`` by age, never below the configured floor."""

    if vehicle_price <= 0:
        return 0.0
    years = min(max(vehicle_age_years, 0), config.max_depreciation_years)
    depreciated = vehicle_price * (1 - years * config.depreciation_rate_per_year)
    return max(depreciated, vehicle_price * config.minimum_sum_insured_ratio)


def resolve_segment(segment: str, config: InsuranceConfig) -> str | None:
    """Return the configured segment key matching ``segment`` case-insensitively."""

    if segment in config.segment_rates:
        return segment
    wanted = segment.strip().lower()
    for key in config.segment_rates:
        if key.lower() == wanted:
            return key
    return None


def _loading_factors(insurance_input: InsuranceInput, config: InsuranceConfig) -> tuple[LoadingFactor, ...]:
    loadings = config.loadings
    selections = (
        ("driver_age", insurance_input.driver_age_band, loadings.driver_age),
        ("region", insurance_input.region, loadings.region),
        ("body_type", insurance_input.body_type, loadings.body_type),
        ("ownership", insurance_input.ownership, loadings.ownership),
    )
    return tuple(
        LoadingFactor(name=name, key=key, factor=table.factor_for(key))
        for name, key, table in selections
    )


def compute_insurance_premium(
    insurance_input: InsuranceInput, config: InsuranceConfig
) -> CalculationOutcome[InsuranceResult]:
    """Price an annual motor policy for ``insurance_input``."""

    price = insurance_input.vehicle_price
    coverage = insurance_input.coverage
    if price <= 0:
        return CalculationOutcome(
            InsuranceResult(vehicle_price=price, segment=insurance_input.segment, coverage=coverage)
        )

    warnings: list[str] = []
    comprehensive = coverage == "comprehensive"
    sum_insured = compute_sum_insured(price, insurance_input.vehicle_age_years, config)

    segment = resolve_segment(insurance_input.segment, config)
    segment_rate = config.segment_rates[segment] if segment is not None else None
    if segment_rate is None and comprehensive:
        warnings.append(
            f"Unknown vehicle segment '{insurance_input.segment}'; own damage cover not priced"
        )

    third_party = price * config.third_party_rates[coverage]
    own_damage_base = sum_insured * segment_rate if comprehensive and segment_rate else 0.0

    loadings = _loading_factors(insurance_input, config)
    own_damage_loaded = own_damage_base
    for loading in loadings:
        own_damage_loaded *= loading.factor

    flood = 0.0
    windscreen = 0.0
    if comprehensive:
        add_ons = config.add_ons
        if insurance_input.include_flood:
            flood = sum_insured * add_ons.flood_rate
        if insurance_input.include_windscreen:
            windscreen_value = min(sum_insured * add_ons.windscreen_value_rate, add_ons.windscreen_value_cap)
            windscreen = windscreen_value * add_ons.windscreen_rate
    elif insurance_input.include_flood or insurance_input.include_windscreen:
        warnings.append("Add-ons are only available with comprehensive cover; ignored")

    ncd = insurance_input.ncd_percent
    if ncd < 0:
        warnings.append("No-claim discount cannot be negative; treated as 0%")
    elif ncd > config.ncd_cap_percent:
        warnings.append(
            f"No-claim discount of {ncd:g}% capped at {config.ncd_cap_percent:g}%"
        )
    ncd = clamp(ncd, 0.0, config.ncd_cap_percent)
    own_damage_after_ncd = own_damage_loaded * (1 - ncd / 100)

    pre_tax_total = own_damage_after_ncd + third_party + flood + windscreen
    minimum_applied = pre_tax_total < config.minimum_premium
    premium = max(pre_tax_total, config.minimum_premium)
    service_tax = premium * config.service_tax_rate
    final_payable = premium + service_tax + config.stamp_duty

    result = InsuranceResult(
        vehicle_price=price,
        segment=segment or insurance_input.segment,
        coverage=coverage,
        sum_insured=sum_insured,
        segment_rate=segment_rate,
        own_damage_base=own_damage_base,
        own_damage_loaded=own_damage_loaded,
        own_damage_after_ncd=own_damage_after_ncd,
        ncd_percent=ncd,
        third_party_premium=third_party,
        flood_premium=flood,
        windscreen_premium=windscreen,
        pre_tax_total=pre_tax_total,
        minimum_premium_applied=minimum_applied,
        premium=premium,
        service_tax=service_tax,
        stamp_duty=config.stamp_duty,
        final_payable=final_payable,
        loadings=loadings,
    )
    return CalculationOutcome(result, tuple(warnings))


__all__ = [
    "InsuranceResult",
    "LoadingFactor",
    "compute_insurance_premium",
    "compute_sum_insured",
    "resolve_segment",
]
