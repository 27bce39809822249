"""
Global Flask error handling middleware.

All exceptions (custom or unexpected) are returned as JSON payloads:
{
    "status": "error",
    "error": "ErrorClassName",
    "message": "Human readable message",
    "details": { ... optional context ... }
}
"""

import os
import traceback

from flask import jsonify
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException

from middleware.errors import BaseAppError, ValidationError, describe_validation_error


def register_error_handlers(app):
    """Attach all JSON error handlers to a Flask app instance."""

    @app.errorhandler(BaseAppError)
    def handle_custom_error(err):
        """Handle custom, domain-specific errors."""
        if err.code >= 500:
            app.logger.error("%s: %s", err.__class__.__name__, err.message)
        response = jsonify(err.to_dict())
        response.status_code = err.code
        return response

    @app.errorhandler(PydanticValidationError)
    def handle_model_validation_error(err):
        errors = err.errors(include_url=False, include_context=False, include_input=False)
        wrapped = ValidationError(describe_validation_error(err), details={"errors": errors})
        response = jsonify(wrapped.to_dict())
        response.status_code = wrapped.code
        return response

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        payload = {
            "status": "error",
            "error": err.__class__.__name__,
            "message": err.description or err.name,
            "details": {},
        }
        return jsonify(payload), err.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(err):
        """Catch-all handler for unexpected exceptions."""
        app.logger.exception("Unhandled error")
        details = {}
        if app.debug or os.getenv("FLASK_DEBUG") == "1":
            details["traceback"] = traceback.format_exc()

        payload = {
            "status": "error",
            "error": err.__class__.__name__,
            "message": str(err) or "Unexpected internal error",
            "details": details
        }
        return jsonify(payload), 500
