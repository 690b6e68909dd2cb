"""Pure calculators.

Each calculator takes an immutable input plus the relevant rate tables and
returns a :class:`CalculationOutcome` pairing the result with warnings.
"""

from .insurance import InsuranceResult, compute_insurance_premium
from .loan import LoanResult, compute_loan
from .tax import SalaryTaxResult, TaxResult, calculate_progressive_tax, compute_salary_tax, compute_tax
from .utils import CalculationOutcome, format_currency, format_percentage, round_currency, round_rate
from .vehicle import CarOwnershipResult, calculate_road_tax, compute_car_ownership

__all__ = [
    "CalculationOutcome",
    "CarOwnershipResult",
    "InsuranceResult",
    "LoanResult",
    "SalaryTaxResult",
    "TaxResult",
    "calculate_progressive_tax",
    "calculate_road_tax",
    "compute_car_ownership",
    "compute_insurance_premium",
    "compute_loan",
    "compute_salary_tax",
    "compute_tax",
    "format_currency",
    "format_percentage",
    "round_currency",
    "round_rate",
]
