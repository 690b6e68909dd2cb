"""Utility helpers for calculator modules."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Generic, TypeVar

ResultT = TypeVar("ResultT")


@dataclass(frozen=True)
class CalculationOutcome(Generic[ResultT]):
    """Result of a calculator call plus any non-fatal policy warnings."""

    result: ResultT
    warnings: tuple[str, ...] = field(default_factory=tuple)


def format_percentage(value: float) -> str:
    """Return a human-readable percentage label for ``value``."""

    percentage = value * 100
    if float(int(percentage)) == percentage:
        return f"{int(percentage)}%"
    return f"{percentage:.2f}%"


def format_currency(value: float, currency: str = "RM") -> str:
    """Return ``value`` formatted with thousands separators."""

    if float(int(value)) == value:
        return f"{currency}{int(value):,}"
    return f"{currency}{value:,.2f}"


def clamp(value: float, lower: float, upper: float | None = None) -> float:
    """Clamp ``value`` to ``[lower, upper]`` (no upper bound when ``None``)."""

    if value < lower:
        return lower
    if upper is not None and value > upper:
        return upper
    return value


def round_currency(value: float) -> float:
    """Round monetary amounts to two decimals."""

    return round(value, 2)


def round_rate(value: float) -> float:
    """Round rate values to four decimals."""

    return round(value, 4)


def round_whole(value: float) -> int:
    """Round to the nearest whole unit, rounding halves up."""

    return int(math.floor(value + 0.5))
