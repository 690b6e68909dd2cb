"""Fixed-payment loan amortization with extra principal payments.

The base instalment comes from the standard annuity formula. Payoff is then
simulated month by month because a flat extra payment changes the effective
schedule in a way that has no simple closed form. Two runs are compared: the
baseline (base instalment only) and the actual plan (base plus extra).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from ringgitcalc.backend.app.models import LoanParameters
from ringgitcalc.backend.config.year_config import LoanConfig

from .utils import CalculationOutcome


@dataclass(frozen=True)
class PaymentScheduleEntry:
    """A single month of the amortization schedule."""

    month: int
    principal: float
    interest: float
    total: float
    balance: float


@dataclass(frozen=True)
class PayoffSimulation:
    """Outcome of iterating the amortization until payoff or the month cap."""

    months: int
    total_interest: float
    remaining_balance: float
    capped: bool
    schedule: tuple[PaymentScheduleEntry, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class LoanResult:
    """Summary of a loan with (optional) extra monthly principal payments."""

    principal: float
    annual_rate_percent: float
    term_years: float
    extra_monthly_payment: float
    base_payment: float
    total_monthly_payment: float
    scheduled_months: float
    months_to_payoff: int
    total_interest: float
    baseline_months: int
    baseline_total_interest: float
    interest_saved: float
    months_saved: int
    schedule: tuple[PaymentScheduleEntry, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return self.months_to_payoff == 0

    @property
    def total_paid(self) -> float:
        return sum(entry.total for entry in self.schedule)

    @property
    def payoff_earlier(self) -> tuple[int, int]:
        """Months saved expressed as ``(years, months)``."""

        return divmod(max(self.months_saved, 0), 12)

    @classmethod
    def empty(cls, params: LoanParameters) -> LoanResult:
        return cls(
            principal=params.principal,
            annual_rate_percent=params.annual_interest_rate_percent,
            term_years=params.term_years,
            extra_monthly_payment=params.extra_monthly_payment,
            base_payment=0.0,
            total_monthly_payment=0.0,
            scheduled_months=0,
            months_to_payoff=0,
            total_interest=0.0,
            baseline_months=0,
            baseline_total_interest=0.0,
            interest_saved=0.0,
            months_saved=0,
        )


def loan_amount_from_price(price: float, margin_percent: float) -> float:
    """Return the financed amount for a property ``price`` at ``margin_percent``."""

    if price <= 0 or margin_percent <= 0:
        return 0.0
    return price * (margin_percent / 100)


def compute_base_payment(principal: float, annual_rate_percent: float, term_years: float) -> float:
    """Return the annuity monthly instalment.

    ``payment = P * r * (1 + r)^n / ((1 + r)^n - 1)`` with ``r`` the monthly
    rate and ``n`` the number of monthly payments. A zero rate simplifies to
    ``P / n``. Non-positive principal or term, and negative rates, describe
    "no loan" and return ``0``.
    """

    if principal <= 0 or term_years <= 0 or annual_rate_percent < 0:
        return 0.0

    payments = term_years * 12
    monthly_rate = annual_rate_percent / 100 / 12
    if monthly_rate == 0:
        return principal / payments

    factor = (1 + monthly_rate) ** payments
    return principal * monthly_rate * factor / (factor - 1)


def simulate_payoff(
    principal: float,
    monthly_rate: float,
    monthly_payment: float,
    *,
    max_months: int = 600,
    balance_epsilon: float = 0.01,
) -> PayoffSimulation:
    """Iterate the amortization of ``principal`` at a fixed ``monthly_payment``.

    Stops once the balance falls to ``balance_epsilon`` or after
    ``max_months`` iterations, whichever comes first.
    """

    balance = principal
    total_interest = 0.0
    schedule: list[PaymentScheduleEntry] = []
    month = 0

    while balance > balance_epsilon and month < max_months:
        interest = balance * monthly_rate
        principal_portion = min(monthly_payment - interest, balance)
        balance -= principal_portion
        total_interest += interest
        month += 1
        schedule.append(
            PaymentScheduleEntry(
                month=month,
                principal=principal_portion,
                interest=interest,
                total=principal_portion + interest,
                balance=balance if balance > 0 else 0.0,
            )
        )

    return PayoffSimulation(
        months=month,
        total_interest=total_interest,
        remaining_balance=balance if balance > 0 else 0.0,
        capped=balance > balance_epsilon,
        schedule=tuple(schedule),
    )


def compare_with_extra_payment(
    principal: float,
    monthly_rate: float,
    base_payment: float,
    extra_payment: float,
    config: LoanConfig,
) -> tuple[PayoffSimulation, PayoffSimulation]:
    """Return the ``(baseline, actual)`` payoff simulations."""

    options = {"max_months": config.max_months, "balance_epsilon": config.balance_epsilon}
    baseline = simulate_payoff(principal, monthly_rate, base_payment, **options)
    actual = simulate_payoff(principal, monthly_rate, base_payment + extra_payment, **options)
    return baseline, actual


def compute_loan(
    params: LoanParameters, config: LoanConfig | None = None
) -> CalculationOutcome[LoanResult]:
    """Compute the instalment, payoff schedule and savings for ``params``."""

    config = config or LoanConfig()
    principal = params.principal
    rate_percent = params.annual_interest_rate_percent
    term_years = params.term_years

    if principal <= 0 or rate_percent <= 0 or term_years <= 0:
        return CalculationOutcome(LoanResult.empty(params))

    warnings: list[str] = []
    if config.plausible_rate_percent is not None and rate_percent > config.plausible_rate_percent:
        warnings.append(
            f"Interest rate {rate_percent:g}% exceeds the plausible maximum of "
            f"{config.plausible_rate_percent:g}%"
        )
    if config.max_term_years is not None and term_years > config.max_term_years:
        warnings.append(
            f"Loan period of {term_years:g} years exceeds the maximum of "
            f"{config.max_term_years:g} years"
        )

    extra = params.extra_monthly_payment
    if extra < 0:
        warnings.append("Extra monthly payment cannot be negative; treated as 0")
        extra = 0.0

    monthly_rate = rate_percent / 100 / 12
    base_payment = compute_base_payment(principal, rate_percent, term_years)
    baseline, actual = compare_with_extra_payment(
        principal, monthly_rate, base_payment, extra, config
    )

    if actual.capped:
        warnings.append(
            f"Loan is not repaid within {config.max_months} months; the schedule stops at the cap"
        )

    result = LoanResult(
        principal=principal,
        annual_rate_percent=rate_percent,
        term_years=term_years,
        extra_monthly_payment=extra,
        base_payment=base_payment,
        total_monthly_payment=base_payment + extra,
        scheduled_months=term_years * 12,
        months_to_payoff=actual.months,
        total_interest=actual.total_interest,
        baseline_months=baseline.months,
        baseline_total_interest=baseline.total_interest,
        interest_saved=baseline.total_interest - actual.total_interest,
        months_saved=baseline.months - actual.months,
        schedule=actual.schedule,
    )
    return CalculationOutcome(result, tuple(warnings))


def sample_schedule(
    schedule: Sequence[PaymentScheduleEntry], every: int = 12
) -> list[PaymentScheduleEntry]:
    """Return every ``every``-th entry plus the final month for charting."""

    if not schedule:
        return []
    sampled = list(schedule[::every])
    if sampled[-1] is not schedule[-1]:
        sampled.append(schedule[-1])
    return sampled


__all__ = [
    "LoanResult",
    "PaymentScheduleEntry",
    "PayoffSimulation",
    "compare_with_extra_payment",
    "compute_base_payment",
    "compute_loan",
    "loan_amount_from_price",
    "sample_schedule",
]
