"""Unit coverage for response serialisation helpers."""

from __future__ import annotations

from flask import Flask

from ringgitcalc.backend.app.services.history_service import InMemoryHistoryRepository
from ringgitcalc.backend.services.response_builder import (
    build_calculation_response,
    build_history_response,
)


def test_build_calculation_response_returns_json(app: Flask) -> None:
    payload = {"summary": {"base_payment": 1209.59}, "meta": {"year": 2025}}

    with app.app_context():
        response, status = build_calculation_response(payload)

    assert status == 200
    assert response.get_json() == payload


def test_build_history_response_lists_records(app: Flask) -> None:
    repository = InMemoryHistoryRepository()
    repository.record("loan", {"principal": 1}, {"summary": {}})
    repository.record("loan", {"principal": 2}, {"summary": {}})

    with app.app_context():
        response, status = build_history_response("loan", repository.entries("loan"))

    body = response.get_json()
    assert status == 200
    assert body["count"] == 2
    assert [item["inputs"]["principal"] for item in body["items"]] == [2, 1]
