"""Integration tests for the translation catalogue endpoints."""

from __future__ import annotations

from http import HTTPStatus


def test_default_translations_are_english(client) -> None:
    response = client.get("/api/v1/translations/")

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert payload["locale"] == "en"
    assert set(payload["available_locales"]) >= {"en", "ms"}
    assert payload["backend"]["loan.summary.base_payment"] == "Monthly instalment"


def test_malay_translations(client) -> None:
    payload = client.get("/api/v1/translations/ms").get_json()

    assert payload["locale"] == "ms"
    assert payload["backend"]["loan.summary.base_payment"] == "Ansuran bulanan"
    assert payload["fallback"]["locale"] == "en"


def test_region_tagged_locale_is_normalised(client) -> None:
    payload = client.get("/api/v1/translations/?locale=ms-MY").get_json()

    assert payload["locale"] == "ms"


def test_unknown_locale_falls_back_to_english(client) -> None:
    payload = client.get("/api/v1/translations/fr").get_json()

    assert payload["locale"] == "en"
