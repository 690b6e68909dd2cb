"""Application factory for the RinggitCalc API."""

import logging
import os
from warnings import warn

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import BadRequest, MethodNotAllowed, NotFound

from .http import problem_response
from .services.history_service import (
    HISTORY_EXTENSION,
    InMemoryHistoryRepository,
    build_history_repository,
)

_LOGGER = logging.getLogger(__name__)


def _parse_allowed_origins(raw: str | None) -> set[str]:
    """Convert an environment variable into a normalised set of origins."""

    if not raw:
        return set()

    return {origin.strip() for origin in raw.split(",") if origin.strip()}


def create_app(history: InMemoryHistoryRepository | None = None) -> Flask:
    """Create and configure the Flask application instance."""

    # Routes import the calculation services, which import this package.
    from .routes import register_routes
    from .routes.config import get_configuration_metadata

    app = Flask(__name__)

    allowed_origins = _parse_allowed_origins(os.getenv("RINGGITCALC_ALLOWED_ORIGINS"))
    if not allowed_origins:
        warn(
            "No allowed origins configured; cross-origin requests will be rejected.",
            stacklevel=1,
        )

    CORS(
        app,
        resources={r"/api/*": {"origins": sorted(allowed_origins)}},
        supports_credentials=False,
        methods=["GET", "OPTIONS", "POST", "DELETE"],
        allow_headers=["Content-Type"],
    )

    app.extensions[HISTORY_EXTENSION] = history or build_history_repository()
    register_routes(app)

    @app.route("/health", methods=["GET"])
    def health_check():
        """Simple health check endpoint for infrastructure monitoring."""

        payload = {"status": "ok", **get_configuration_metadata()}
        return jsonify(payload)

    @app.errorhandler(BadRequest)
    def handle_bad_request(error: BadRequest):
        """Return consistent JSON responses for malformed payloads."""

        message = error.description or "Invalid request"
        return problem_response("bad_request", status=400, message=message).to_response()

    @app.errorhandler(NotFound)
    def handle_not_found(error: NotFound):
        return problem_response("not_found", status=404, message=error.description).to_response()

    @app.errorhandler(MethodNotAllowed)
    def handle_method_not_allowed(error: MethodNotAllowed):
        return problem_response(
            "method_not_allowed", status=405, message=error.description
        ).to_response()

    @app.errorhandler(FileNotFoundError)
    def handle_missing_configuration(error: FileNotFoundError):
        """Unknown years surface as 404s rather than server errors."""

        return problem_response("not_found", status=404, message=str(error)).to_response()

    @app.errorhandler(ValueError)
    def handle_value_error(error: ValueError):
        """Gracefully surface domain validation errors to clients."""

        _LOGGER.info("Rejected request: %s", error)
        return problem_response(
            "validation_error", status=400, message=str(error)
        ).to_response()

    return app


__all__ = ["HISTORY_EXTENSION", "create_app"]
