# wims/errors.py
"""
Domain errors for WIMS.

Every service command raises one of these instead of returning flags, and the
handlers registered here turn them into JSON responses:

    {"error": "<code>", "message": "<human text>"}

Nothing is written when one of these is raised: validation happens before any
mutation, and the unit-of-work rolls the session back on the way out.
"""

from __future__ import annotations

from typing import Any, Optional

from flask import Flask, current_app, jsonify
from werkzeug.exceptions import HTTPException


class WimsError(Exception):
    """Base class for all WIMS domain errors."""

    status_code = 400
    error_code = "WIMS_ERROR"

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error_code, "message": self.message}
        if self.field:
            body["field"] = self.field
        return body


class ValidationError(WimsError):
    status_code = 400
    error_code = "VALIDATION_ERROR"


class AuthenticationError(WimsError):
    status_code = 401
    error_code = "INVALID_CREDENTIALS"


class PermissionDenied(WimsError):
    status_code = 403
    error_code = "FORBIDDEN"


class NotFoundError(WimsError):
    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(f"{resource} '{identifier}' not found")
        self.resource = resource
        self.identifier = identifier


class InvalidTransition(WimsError):
    status_code = 409
    error_code = "INVALID_TRANSITION"

    def __init__(self, message: str, *, current: Optional[str] = None, target: Optional[str] = None):
        super().__init__(message)
        self.current = current
        self.target = target

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.current:
            body["current_status"] = self.current
        if self.target:
            body["target_status"] = self.target
        return body


class DuplicateError(WimsError):
    status_code = 409
    error_code = "DUPLICATE"

    def __init__(self, message: str, *, existing: Any = None, field: Optional[str] = None):
        super().__init__(message, field=field)
        self.existing = existing

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.existing is not None and hasattr(self.existing, "to_dict"):
            body["existing"] = self.existing.to_dict()
        return body


class PersistenceError(WimsError):
    """The database rejected a commit; the session has been rolled back."""

    status_code = 503
    error_code = "PERSISTENCE_ERROR"

    def __init__(self, action: str):
        super().__init__(f"{action} failed. Please try again.")
        self.action = action


# =========================================================
# Flask wiring
# =========================================================
def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(WimsError)
    def handle_wims_error(err: WimsError):
        if err.status_code >= 500:
            current_app.logger.error("%s: %s", err.error_code, err.message)
        else:
            current_app.logger.warning("%s: %s", err.error_code, err.message)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(err: HTTPException):
        code = (err.name or "error").upper().replace(" ", "_")
        return jsonify({"error": code, "message": err.description}), err.code

    @app.errorhandler(429)
    def ratelimit_handler(e):
        return jsonify({"error": "TOO_MANY_REQUESTS", "message": "Too many requests. Please try again later."}), 429
