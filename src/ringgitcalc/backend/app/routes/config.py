"""Expose the rate tables behind each calculator.

Clients use these endpoints to populate segment pickers, relief caps and
loading options without duplicating the YAML tables.
"""

from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify

from ringgitcalc.backend.app.http import not_found
from ringgitcalc.backend.config.year_config import (
    YearConfiguration,
    load_manifest,
    load_year_configuration,
)
from ringgitcalc.backend.version import get_project_version

blueprint = Blueprint("config", __name__, url_prefix="/api/v1/config")


def get_configuration_metadata() -> dict[str, Any]:
    """Expose runtime metadata derived from the configuration manifest."""

    manifest = load_manifest()
    supported_years = list(manifest.supported_years)
    return {
        "version": get_project_version(),
        "supported_years": supported_years,
        "default_year": supported_years[-1] if supported_years else None,
    }


def _load(year: int) -> YearConfiguration | None:
    try:
        return load_year_configuration(year)
    except FileNotFoundError:
        return None


def _serialise_tax(config: YearConfiguration) -> dict[str, Any]:
    tax = config.tax
    lower = 0.0
    brackets: list[dict[str, Any]] = []
    for bracket in tax.brackets:
        brackets.append({"lower": lower, "upper": bracket.upper_bound, "rate": bracket.rate})
        if bracket.upper_bound is not None:
            lower = bracket.upper_bound

    return {
        "year": config.year,
        "currency": config.currency,
        "brackets": brackets,
        "non_resident_rate": tax.non_resident_rate,
        "personal_relief": tax.personal_relief,
        "reliefs": {
            relief_id: {"label": rule.label, "cap": rule.cap}
            for relief_id, rule in tax.reliefs.items()
        },
        "relief_groups": {
            group_id: {"label": group.label, "members": list(group.members), "cap": group.cap}
            for group_id, group in tax.relief_groups.items()
        },
        "payroll": tax.payroll.model_dump(mode="json"),
    }


@blueprint.get("/years")
def list_years():
    """Return every configured year with its manifest status."""

    manifest = load_manifest()
    payload = {
        "years": [
            {"year": entry.year, "status": entry.status} for entry in manifest.years
        ],
        **get_configuration_metadata(),
    }
    return jsonify(payload), 200


@blueprint.get("/<int:year>/tax")
def get_tax_configuration(year: int):
    config = _load(year)
    if config is None:
        return not_found(f"Configuration for year {year} is not available").to_response()
    return jsonify(_serialise_tax(config)), 200


@blueprint.get("/<int:year>/insurance")
def get_insurance_configuration(year: int):
    config = _load(year)
    if config is None:
        return not_found(f"Configuration for year {year} is not available").to_response()
    payload = {"year": config.year, **config.insurance.model_dump(mode="json")}
    return jsonify(payload), 200


@blueprint.get("/<int:year>/vehicle")
def get_vehicle_configuration(year: int):
    config = _load(year)
    if config is None:
        return not_found(f"Configuration for year {year} is not available").to_response()
    payload = {"year": config.year, **config.vehicle.model_dump(mode="json", by_alias=True)}
    return jsonify(payload), 200
