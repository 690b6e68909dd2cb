"""Read and clear the recent calculations kept per calculator."""

from __future__ import annotations

from typing import Any

from flask import Blueprint, current_app, jsonify

from ringgitcalc.backend.app.http import not_found
from ringgitcalc.backend.app.services.history_service import (
    HISTORY_EXTENSION,
    InMemoryHistoryRepository,
)
from ringgitcalc.backend.services.response_builder import build_history_response

blueprint = Blueprint("history", __name__, url_prefix="/api/v1/history")


def current_history() -> InMemoryHistoryRepository:
    """Return the history repository attached to the running application."""

    return current_app.extensions[HISTORY_EXTENSION]


def _unknown_calculator(calculator: str) -> tuple[Any, int]:
    return not_found(
        f"Unknown calculator '{calculator}'",
        calculators=list(current_history().calculators),
    ).to_response()


@blueprint.get("/<calculator>")
def list_history(calculator: str) -> tuple[Any, int]:
    try:
        records = current_history().entries(calculator)
    except KeyError:
        return _unknown_calculator(calculator)
    return build_history_response(calculator, records)


@blueprint.delete("/<calculator>")
def clear_history(calculator: str) -> tuple[Any, int]:
    try:
        removed = current_history().clear(calculator)
    except KeyError:
        return _unknown_calculator(calculator)
    return jsonify({"calculator": calculator, "removed": removed}), 200
