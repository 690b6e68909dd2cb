"""Cross-origin behaviour of the API."""

from __future__ import annotations

import pytest

from ringgitcalc.backend.app import create_app


def test_allowed_origin_receives_cors_header(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RINGGITCALC_ALLOWED_ORIGINS", "https://calc.example, https://other.example")
    client = create_app().test_client()

    response = client.get("/api/v1/config/years", headers={"Origin": "https://calc.example"})

    assert response.headers.get("Access-Control-Allow-Origin") == "https://calc.example"


def test_unlisted_origin_is_not_allowed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RINGGITCALC_ALLOWED_ORIGINS", "https://calc.example")
    client = create_app().test_client()

    response = client.get("/api/v1/config/years", headers={"Origin": "https://evil.example"})

    assert "Access-Control-Allow-Origin" not in response.headers


def test_missing_configuration_warns(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RINGGITCALC_ALLOWED_ORIGINS", raising=False)

    with pytest.warns(UserWarning, match="No allowed origins"):
        create_app()
