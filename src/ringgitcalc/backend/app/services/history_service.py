"""Bounded in-memory history of recent calculations."""

from __future__ import annotations

import logging
import os
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Callable, Deque, Iterable, Mapping
from uuid import uuid4

CALCULATORS: tuple[str, ...] = ("loan", "tax", "insurance", "car")
DEFAULT_CAPACITY = 20
HISTORY_EXTENSION = "ringgitcalc.history"

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryRecord:
    """Snapshot of one calculation: the submitted inputs and the response."""

    id: str
    calculator: str
    inputs: Mapping[str, Any]
    result: Mapping[str, Any]
    created_at: datetime

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "calculator": self.calculator,
            "created_at": self.created_at.isoformat(),
            "inputs": dict(self.inputs),
            "result": dict(self.result),
        }


class InMemoryHistoryRepository:
    """Thread-safe per-calculator history that keeps the newest ``max_items`` records."""

    def __init__(
        self,
        *,
        calculators: Iterable[str] = CALCULATORS,
        max_items: int = DEFAULT_CAPACITY,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if max_items <= 0:
            raise ValueError("max_items must be positive")

        self._max_items = max_items
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._records: dict[str, Deque[HistoryRecord]] = {
            name: deque(maxlen=max_items) for name in calculators
        }
        self._lock = Lock()

    @property
    def max_items(self) -> int:
        return self._max_items

    @property
    def calculators(self) -> tuple[str, ...]:
        return tuple(self._records)

    def _bucket(self, calculator: str) -> Deque[HistoryRecord]:
        try:
            return self._records[calculator]
        except KeyError:
            raise KeyError(calculator) from None

    def record(
        self, calculator: str, inputs: Mapping[str, Any], result: Mapping[str, Any]
    ) -> HistoryRecord:
        """Store a calculation, evicting the oldest record when full."""

        entry = HistoryRecord(
            id=uuid4().hex,
            calculator=calculator,
            inputs=dict(inputs),
            result=dict(result),
            created_at=self._clock(),
        )
        with self._lock:
            self._bucket(calculator).appendleft(entry)
        return entry

    def entries(self, calculator: str) -> list[HistoryRecord]:
        """Return the stored records for ``calculator``, newest first."""

        with self._lock:
            return list(self._bucket(calculator))

    def clear(self, calculator: str) -> int:
        """Drop every record for ``calculator`` and return how many were removed."""

        with self._lock:
            bucket = self._bucket(calculator)
            removed = len(bucket)
            bucket.clear()
        return removed


def _parse_capacity(value: str | None, *, env: str) -> int | None:
    if value is None or not value.strip():
        return None
    try:
        parsed = int(value)
    except ValueError:
        _LOGGER.warning("Ignoring invalid value for %s: %s", env, value)
        return None
    if parsed <= 0:
        _LOGGER.warning("Ignoring non-positive value for %s: %s", env, value)
        return None
    return parsed


def build_history_repository() -> InMemoryHistoryRepository:
    """Create a repository sized by ``RINGGITCALC_HISTORY_CAPACITY``."""

    env = "RINGGITCALC_HISTORY_CAPACITY"
    capacity = _parse_capacity(os.getenv(env), env=env)
    return InMemoryHistoryRepository(max_items=capacity or DEFAULT_CAPACITY)


__all__ = [
    "CALCULATORS",
    "DEFAULT_CAPACITY",
    "HISTORY_EXTENSION",
    "HistoryRecord",
    "InMemoryHistoryRepository",
    "build_history_repository",
]
