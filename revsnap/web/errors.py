"""JSON error handlers for the RevSnap API."""

from __future__ import annotations

import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from revsnap.core.exceptions import RevSnapError

logger = logging.getLogger(__name__)


def error_response(title: str, message: str, status_code: int):
    """Build the JSON body shared by every error."""
    return jsonify({
        "success": False,
        "error": title,
        "message": message,
    }), status_code


def register_error_handlers(app: Flask) -> None:
    """Register error handlers with the Flask app."""

    @app.errorhandler(RevSnapError)
    def domain_error(error: RevSnapError):
        logger.info(f"{error.title} ({error.status_code}): {error.message}")
        return error_response(error.title, error.message, error.status_code)

    @app.errorhandler(400)
    def bad_request(error):
        return error_response(
            "Bad Request",
            str(error.description) if hasattr(error, "description") else "Invalid request",
            400,
        )

    @app.errorhandler(404)
    def not_found(error):
        return error_response("Not Found", "The requested resource was not found", 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return error_response("Method Not Allowed", "The method is not allowed for this endpoint", 405)

    @app.errorhandler(413)
    def payload_too_large(error):
        limit_mb = (app.config.get("MAX_CONTENT_LENGTH") or 0) // (1024 * 1024)
        return error_response("Payload Too Large", f"Uploads are limited to {limit_mb} MB", 413)

    @app.errorhandler(500)
    def internal_server_error(error):
        return error_response("Internal Server Error", "An unexpected error occurred", 500)

    @app.errorhandler(Exception)
    def unhandled_exception(error: Exception):
        if isinstance(error, HTTPException):
            return error_response(error.name, error.description or error.name, error.code or 500)
        logger.exception("Unhandled error while processing request")
        return error_response("Internal Server Error", "An unexpected error occurred", 500)
