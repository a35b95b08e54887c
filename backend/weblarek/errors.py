# Overview: API error taxonomy and the Flask handlers that render it as JSON.

"""
Every service raises one of the ApiError subclasses below instead of leaking
storage errors. The handlers registered here turn them into
{"error": "<message>"} responses with the matching status code.

Storage-level duplicate keys (IntegrityError) become 409; other constraint
violations (CHECK, NOT NULL, foreign keys) become 400. Anything
unclassified becomes a sanitized 500; the real exception is only logged.
"""

from flask import jsonify, current_app
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from .extensions import db


class ApiError(Exception):
    """Base class for errors that carry their own HTTP status."""
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class BadRequestError(ApiError):
    """Malformed input or a failed business-rule check."""
    status_code = 400
    default_message = "Bad request"


class UnauthorizedError(ApiError):
    """Missing, invalid, or expired credentials."""
    status_code = 401
    default_message = "Authorization required"


class ForbiddenError(ApiError):
    """Authenticated but not allowed."""
    status_code = 403
    default_message = "Access denied"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ApiError):
    """Uniqueness violation (duplicate email, duplicate product title)."""
    status_code = 409
    default_message = "Resource already exists"


# SQLSTATE 23505 (PostgreSQL), "UNIQUE constraint failed" (SQLite),
# "Duplicate entry" (MySQL)
UNIQUE_VIOLATION_MARKERS = ("unique", "duplicate")


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    if getattr(orig, "pgcode", None) == "23505" or getattr(orig, "sqlstate", None) == "23505":
        return True
    message = str(orig).lower()
    return any(marker in message for marker in UNIQUE_VIOLATION_MARKERS)


def error_response(message: str, status_code: int):
    return jsonify({"error": message}), status_code


def register_error_handlers(app) -> None:
    @app.errorhandler(ApiError)
    def handle_api_error(exc: ApiError):
        if exc.status_code >= 500:
            current_app.logger.error("API error: %s", exc.message)
            return error_response(ApiError.default_message, exc.status_code)
        return error_response(exc.message, exc.status_code)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(exc: IntegrityError):
        db.session.rollback()
        current_app.logger.warning("Integrity error: %s", exc.orig)
        if is_unique_violation(exc):
            return error_response(ConflictError.default_message, ConflictError.status_code)
        return error_response("Invalid data", BadRequestError.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        return error_response(exc.description or exc.name, exc.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        db.session.rollback()
        current_app.logger.exception("Unhandled error")
        return error_response("Internal server error", 500)
