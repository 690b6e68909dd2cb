"""Request parsing and response serialisation shared by the Flask routes."""

from .request_parser import parse_calculation_payload
from .response_builder import build_calculation_response, build_history_response

__all__ = [
    "build_calculation_response",
    "build_history_response",
    "parse_calculation_payload",
]
