"""Label catalogues loaded from the JSON files in :mod:`ringgitcalc.translations`."""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import cache
from importlib import resources
from typing import Any, Mapping

BASE_LOCALE = "en"
_TRANSLATIONS_PACKAGE = "ringgitcalc.translations"


@dataclass(frozen=True)
class Translator:
    """Callable lookup of localized labels; unknown keys fall back to English, then ``default`` or the key."""

    locale: str
    _messages: Mapping[str, str]
    _fallback: Mapping[str, str]

    def __call__(self, key: str, default: str | None = None) -> str:
        message = self._messages.get(key) or self._fallback.get(key)
        if message:
            return message
        return key if default is None else default

    def labels(self, prefix: str, keys: tuple[str, ...] | list[str]) -> dict[str, str]:
        """Return ``{key: label}`` for every ``prefix.key``."""

        return {key: self(f"{prefix}.{key}") for key in keys}


@dataclass(frozen=True)
class Catalogue:
    locale: str
    backend: Mapping[str, str]
    frontend: Mapping[str, Any]


@cache
def available_locales() -> tuple[str, ...]:
    """Return the locales that ship a JSON catalogue."""

    root = resources.files(_TRANSLATIONS_PACKAGE)
    locales = sorted(entry.name[: -len(".json")] for entry in root.iterdir() if entry.name.endswith(".json"))
    return tuple(locales) or (BASE_LOCALE,)


@cache
def _load_catalogue(locale: str) -> Catalogue:
    resource = resources.files(_TRANSLATIONS_PACKAGE).joinpath(f"{locale}.json")
    if not resource.is_file():
        return Catalogue(locale=locale, backend={}, frontend={})

    with resource.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)

    backend = payload.get("backend") or {}
    frontend = payload.get("frontend") or {}
    return Catalogue(
        locale=locale,
        backend={str(key): str(value) for key, value in backend.items()},
        frontend=frontend,
    )


def normalise_locale(locale: str | None) -> str:
    """Map ``ms-MY``, ``EN`` and similar hints onto a supported catalogue key."""

    if not locale:
        return BASE_LOCALE

    normalized = locale.strip().lower().replace("_", "-").split("-")[0]
    return normalized if normalized in available_locales() else BASE_LOCALE


def get_translator(locale: str | None = None) -> Translator:
    """Return a translator for ``locale`` backed by the English catalogue."""

    normalized = normalise_locale(locale)
    catalogue = _load_catalogue(normalized)
    fallback = _load_catalogue(BASE_LOCALE)
    return Translator(
        locale=catalogue.locale,
        _messages=catalogue.backend,
        _fallback=fallback.backend,
    )


def load_translations(locale: str | None = None) -> dict[str, Any]:
    """Expose the backend and frontend labels of ``locale`` to API consumers."""

    normalized = normalise_locale(locale)
    catalogue = _load_catalogue(normalized)
    fallback = _load_catalogue(BASE_LOCALE)

    return {
        "locale": normalized,
        "available_locales": list(available_locales()),
        "backend": dict(catalogue.backend),
        "frontend": catalogue.frontend,
        "fallback": {
            "locale": BASE_LOCALE,
            "backend": dict(fallback.backend),
        },
    }


__all__ = [
    "BASE_LOCALE",
    "Catalogue",
    "Translator",
    "available_locales",
    "get_translator",
    "load_translations",
    "normalise_locale",
]
