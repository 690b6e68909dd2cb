"""Malaysian progressive income tax, relief caps and payroll derivation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from ringgitcalc.backend.app.models import PayrollInput, TaxInput
from ringgitcalc.backend.config.year_config import TaxBracket, TaxConfig

from .utils import CalculationOutcome, clamp, format_currency, round_whole

_LOGGER = logging.getLogger(__name__)

PERSONAL_RELIEF_ID = "personal"
VOLUNTARY_EPF_RELIEF_ID = "voluntary_epf"


@dataclass(frozen=True)
class BracketTax:
    """Portion of income taxed inside a single bracket."""

    lower: float
    upper: float | None
    taxable_amount: float
    rate: float
    tax: float


@dataclass(frozen=True)
class ReliefBreakdownEntry:
    relief_id: str
    label: str
    entered: float
    applied: float
    cap: float | None = None

    @property
    def capped(self) -> bool:
        return self.cap is not None and self.entered > self.cap


@dataclass(frozen=True)
class ReliefSummary:
    total: float
    entries: tuple[ReliefBreakdownEntry, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TaxResult:
    """Tax assessment for one year of income."""

    gross_annual_income: float
    residency: str
    total_reliefs: float
    chargeable_income: float
    gross_tax: float
    annual_tax: int
    monthly_tax: int
    brackets: tuple[BracketTax, ...] = field(default_factory=tuple)
    reliefs: tuple[ReliefBreakdownEntry, ...] = field(default_factory=tuple)

    @property
    def effective_rate(self) -> float:
        if self.gross_annual_income <= 0:
            return 0.0
        return self.annual_tax / self.gross_annual_income


@dataclass(frozen=True)
class PayrollSummary:
    """Monthly salary figures and statutory EPF contributions."""

    monthly_gross: float
    annual_gross: float
    employee_epf: float
    employer_epf: float
    voluntary_epf: float

    @property
    def annual_employee_epf(self) -> float:
        return self.employee_epf * 12

    @property
    def annual_employer_epf(self) -> float:
        return self.employer_epf * 12

    @property
    def annual_voluntary_epf(self) -> float:
        return self.voluntary_epf * 12

    @property
    def total_epf_contribution(self) -> float:
        return self.annual_employee_epf + self.annual_employer_epf + self.annual_voluntary_epf


@dataclass(frozen=True)
class SalaryTaxResult:
    """Income tax assessment combined with the derived monthly take-home pay."""

    payroll: PayrollSummary
    tax: TaxResult
    take_home_pay: float

    @property
    def annual_net_income(self) -> float:
        return (
            self.tax.gross_annual_income
            - self.tax.annual_tax
            - self.payroll.annual_employee_epf
            - self.payroll.annual_voluntary_epf
        )


def progressive_tax_breakdown(amount: float, brackets: Sequence[TaxBracket]) -> list[BracketTax]:
    """Split ``amount`` across ``brackets`` without rounding any portion."""

    breakdown: list[BracketTax] = []
    remaining = amount
    lower = 0.0

    for bracket in brackets:
        if remaining <= 0:
            break
        upper = bracket.upper_bound
        if upper is None:
            taxable = remaining
        else:
            taxable = min(remaining, upper - lower)
        if taxable > 0:
            breakdown.append(
                BracketTax(
                    lower=lower,
                    upper=upper,
                    taxable_amount=taxable,
                    rate=bracket.rate,
                    tax=taxable * bracket.rate,
                )
            )
            remaining -= taxable
        if upper is not None:
            lower = upper

    return breakdown


def calculate_progressive_tax(amount: float, brackets: Sequence[TaxBracket]) -> float:
    """Return the unrounded progressive tax owed on ``amount``."""

    return sum(entry.tax for entry in progressive_tax_breakdown(amount, brackets))


def _non_negative(relief_id: str, value: float, warnings: list[str]) -> float:
    if value < 0:
        warnings.append(f"Relief '{relief_id}' cannot be negative; treated as 0")
        return 0.0
    return value


def compute_reliefs(
    claims: Mapping[str, float], config: TaxConfig
) -> CalculationOutcome[ReliefSummary]:
    """Apply individual and joint caps to ``claims`` and add the personal relief.

    Capped reliefs are clamped to ``[0, cap]`` independently. Members of a
    relief group are clamped at zero and then share the group's joint cap.
    """

    warnings: list[str] = []
    entries: list[ReliefBreakdownEntry] = [
        ReliefBreakdownEntry(
            relief_id=PERSONAL_RELIEF_ID,
            label="Personal",
            entered=config.personal_relief,
            applied=config.personal_relief,
        )
    ]

    for relief_id, rule in config.reliefs.items():
        entered = _non_negative(relief_id, float(claims.get(relief_id, 0.0)), warnings)
        applied = clamp(entered, 0.0, rule.cap)
        if applied < entered:
            warnings.append(f"{rule.label} relief capped at {format_currency(rule.cap or 0.0)}")
        entries.append(
            ReliefBreakdownEntry(
                relief_id=relief_id,
                label=rule.label,
                entered=entered,
                applied=applied,
                cap=rule.cap,
            )
        )

    for group_id, group in config.relief_groups.items():
        entered = sum(
            _non_negative(member, float(claims.get(member, 0.0)), warnings)
            for member in group.members
        )
        applied = clamp(entered, 0.0, group.cap)
        if applied < entered:
            warnings.append(f"{group.label} capped at {format_currency(group.cap)}")
        entries.append(
            ReliefBreakdownEntry(
                relief_id=group_id,
                label=group.label,
                entered=entered,
                applied=applied,
                cap=group.cap,
            )
        )

    known = set(config.reliefs) | config.grouped_relief_ids
    for relief_id in claims:
        if relief_id not in known:
            warnings.append(f"Unknown relief '{relief_id}' ignored")

    if warnings:
        _LOGGER.info("Relief adjustments applied: %s", "; ".join(warnings))

    summary = ReliefSummary(
        total=sum(entry.applied for entry in entries),
        entries=tuple(entries),
    )
    return CalculationOutcome(summary, tuple(warnings))


def compute_tax(tax_input: TaxInput, config: TaxConfig) -> CalculationOutcome[TaxResult]:
    """Assess income tax for ``tax_input``.

    Residents pay the progressive schedule on chargeable income (gross minus
    reliefs). Non-residents pay the flat rate on gross income and reliefs do
    not reduce the tax. The annual tax is rounded to whole ringgit and the
    monthly deduction is the rounded twelfth of the rounded annual tax.
    """

    warnings: list[str] = []
    gross = tax_input.gross_annual_income
    if gross < 0:
        warnings.append("Gross annual income cannot be negative; treated as 0")
        gross = 0.0

    relief_outcome = compute_reliefs(tax_input.reliefs, config)
    warnings.extend(relief_outcome.warnings)
    reliefs = relief_outcome.result

    chargeable = max(0.0, gross - reliefs.total)

    if tax_input.is_resident:
        brackets = tuple(progressive_tax_breakdown(chargeable, config.brackets))
    else:
        brackets = (
            BracketTax(
                lower=0.0,
                upper=None,
                taxable_amount=gross,
                rate=config.non_resident_rate,
                tax=gross * config.non_resident_rate,
            ),
        ) if gross > 0 else ()

    gross_tax = sum(entry.tax for entry in brackets)
    annual_tax = round_whole(gross_tax)
    monthly_tax = round_whole(annual_tax / 12)

    result = TaxResult(
        gross_annual_income=gross,
        residency=tax_input.residency,
        total_reliefs=reliefs.total,
        chargeable_income=chargeable,
        gross_tax=gross_tax,
        annual_tax=annual_tax,
        monthly_tax=monthly_tax,
        brackets=brackets,
        reliefs=reliefs.entries,
    )
    return CalculationOutcome(result, tuple(warnings))


def derive_payroll(payroll: PayrollInput, config: TaxConfig) -> CalculationOutcome[PayrollSummary]:
    """Compute gross pay and EPF contributions from salary components."""

    warnings: list[str] = []
    for field_name, limit in config.payroll.plausible_limits.items():
        value = getattr(payroll, field_name, None)
        if value is not None and value > limit:
            label = field_name.replace("_", " ").capitalize()
            warnings.append(
                f"{label} of {format_currency(value)} exceeds the plausible limit of "
                f"{format_currency(limit)}"
            )

    summary = PayrollSummary(
        monthly_gross=payroll.monthly_gross,
        annual_gross=payroll.annual_gross,
        employee_epf=payroll.basic_salary * config.payroll.employee_epf_rate,
        employer_epf=payroll.basic_salary * config.payroll.employer_epf_rate,
        voluntary_epf=payroll.voluntary_epf,
    )
    return CalculationOutcome(summary, tuple(warnings))


def compute_salary_tax(
    payroll: PayrollInput,
    reliefs: Mapping[str, float],
    config: TaxConfig,
    *,
    residency: str = "resident",
    gross_annual_income: float | None = None,
) -> CalculationOutcome[SalaryTaxResult]:
    """Derive payroll figures, assess tax and compute monthly take-home pay.

    Voluntary EPF is entered monthly and joins the voluntary contribution
    relief as an annual amount. ``gross_annual_income`` overrides the income
    derived from the salary components when provided.
    """

    payroll_outcome = derive_payroll(payroll, config)
    summary = payroll_outcome.result

    claims = dict(reliefs)
    if summary.annual_voluntary_epf:
        claims[VOLUNTARY_EPF_RELIEF_ID] = (
            claims.get(VOLUNTARY_EPF_RELIEF_ID, 0.0) + summary.annual_voluntary_epf
        )

    gross = summary.annual_gross if gross_annual_income is None else gross_annual_income
    tax_outcome = compute_tax(
        TaxInput(gross_annual_income=gross, residency=residency, reliefs=claims),
        config,
    )
    tax = tax_outcome.result

    take_home = summary.monthly_gross - summary.employee_epf - summary.voluntary_epf - tax.monthly_tax

    result = SalaryTaxResult(payroll=summary, tax=tax, take_home_pay=take_home)
    return CalculationOutcome(result, payroll_outcome.warnings + tax_outcome.warnings)


__all__ = [
    "BracketTax",
    "PayrollSummary",
    "ReliefBreakdownEntry",
    "ReliefSummary",
    "SalaryTaxResult",
    "TaxResult",
    "calculate_progressive_tax",
    "compute_reliefs",
    "compute_salary_tax",
    "compute_tax",
    "derive_payroll",
    "progressive_tax_breakdown",
]
