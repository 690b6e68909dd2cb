"""Unit coverage for the calculation orchestration layer."""

from __future__ import annotations

import logging

import pytest

from ringgitcalc.backend.app.services.calculation_service import (
    calculate_car_ownership,
    calculate_income_tax,
    calculate_insurance,
    calculate_loan,
)


def test_calculate_loan_response_shape() -> None:
    result = calculate_loan(
        {"principal": 90000, "annual_interest_rate_percent": 3.5, "term_years": 7}
    )

    summary = result["summary"]
    assert summary["base_payment"] == pytest.approx(1209.59, abs=0.1)
    assert summary["months_to_payoff"] == 84
    assert summary["labels"]["base_payment"] == "Monthly instalment"
    assert result["meta"] == {"calculator": "loan", "year": 2025, "locale": "en", "currency": "RM"}
    assert [point["category"] for point in result["chart"]] == ["principal", "interest"]
    assert result["details"][0]["month"] == 1
    assert result["warnings"] == []


def test_calculate_loan_from_property_price() -> None:
    result = calculate_loan(
        {
            "property_price": 500000,
            "loan_margin_percent": 90,
            "annual_interest_rate_percent": 4,
            "term_years": 35,
        }
    )

    assert result["summary"]["principal"] == 450000


def test_calculate_loan_without_amount_is_empty() -> None:
    result = calculate_loan({"annual_interest_rate_percent": 4, "term_years": 30})

    assert result["summary"]["base_payment"] == 0
    assert result["details"] == []


def test_calculate_income_tax_combines_sections() -> None:
    result = calculate_income_tax(
        {
            "salary": {"basic_salary": 5000, "allowances": 500, "bonus": 10000},
            "contributions": {"voluntary_epf": 700},
            "reliefs": {"children": 15000},
        }
    )

    summary = result["summary"]
    assert summary["gross_annual_income"] == 76000
    assert summary["total_epf_contribution"] == pytest.approx(6600 + 7200 + 8400)
    assert any("Children relief capped" in warning for warning in result["warnings"])
    categories = {detail["category"] for detail in result["details"]}
    assert categories == {"bracket", "relief"}
    assert result["details"][0]["label"] == "0 - 5,000 @ 0%"
    assert {point["category"] for point in result["chart"]} == {
        "net_income",
        "annual_tax",
        "employee_epf",
        "employer_epf",
        "voluntary_epf",
    }


def test_calculate_income_tax_localised_labels() -> None:
    result = calculate_income_tax({"gross_annual_income": 69000, "locale": "ms"})

    assert result["summary"]["annual_tax"] == 3100
    assert result["summary"]["labels"]["annual_tax"] == "Cukai tahunan"
    assert result["meta"]["locale"] == "ms"


def test_calculate_insurance_reference_quote() -> None:
    result = calculate_insurance({"vehicle_price": 100000, "segment": "b", "ncd_percent": 55})

    assert result["summary"]["segment"] == "B"
    assert result["summary"]["final_payable"] == pytest.approx(1586.8)
    assert len(result["details"]) == 4


def test_unknown_segment_is_a_validation_error() -> None:
    with pytest.raises(ValueError, match="Unknown vehicle segment"):
        calculate_insurance({"vehicle_price": 100000, "segment": "Z"})


def test_invalid_payload_becomes_value_error() -> None:
    with pytest.raises(ValueError, match="Invalid calculation payload"):
        calculate_loan({"principal": -5})


def test_non_mapping_payload_is_rejected() -> None:
    with pytest.raises(ValueError):
        calculate_loan(["principal", 5])  # type: ignore[arg-type]


def test_unknown_year_raises_file_not_found() -> None:
    with pytest.raises(FileNotFoundError):
        calculate_loan({"principal": 1000, "year": 2099})


def test_calculate_car_ownership_components() -> None:
    result = calculate_car_ownership(
        {
            "vehicle_price": 100000,
            "segment": "C",
            "down_payment_percent": 10,
            "interest_rate_percent": 3,
            "loan_period_years": 7,
            "engine_cc": 1600,
            "monthly_mileage": 1000,
            "insurance": {"coverage": "comprehensive", "ncd_percent": 25},
        }
    )

    summary = result["summary"]
    components = sum(point["amount"] for point in result["chart"])
    assert summary["loan_amount"] == 90000
    assert summary["monthly_road_tax"] == pytest.approx(7.5)
    assert summary["total_monthly_cost"] == pytest.approx(components, abs=0.05)
    assert result["details"][0]["category"] == "insurance"
    assert result["details"][0]["ncd_percent"] == 25


def test_profiling_logs_timings(monkeypatch: pytest.MonkeyPatch, caplog) -> None:
    monkeypatch.setenv("RINGGITCALC_PROFILE_CALCULATIONS", "1")

    with caplog.at_level(logging.DEBUG, logger="ringgitcalc.backend.app.services.calculation_service"):
        calculate_loan({"principal": 1000, "annual_interest_rate_percent": 5, "term_years": 1})

    assert any("calculate_loan timings" in record.getMessage() for record in caplog.records)
