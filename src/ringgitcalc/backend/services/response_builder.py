"""Utilities for serialising calculation and history responses."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Tuple

from flask import jsonify

from ringgitcalc.backend.app.services.history_service import HistoryRecord

ResponseTuple = Tuple[Any, int]


def build_calculation_response(payload: Mapping[str, Any]) -> ResponseTuple:
    """Return a Flask JSON response for the calculation ``payload``."""

    return jsonify(payload), 200


def build_history_response(calculator: str, records: Iterable[HistoryRecord]) -> ResponseTuple:
    """Return the stored history of ``calculator``, newest first."""

    items = [record.as_dict() for record in records]
    return jsonify({"calculator": calculator, "count": len(items), "items": items}), 200
