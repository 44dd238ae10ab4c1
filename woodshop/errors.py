"""
Error taxonomy shared by the services and the HTTP boundary.

Every error carries the HTTP status it maps to; the app's exception
handlers render them as ``{"error": message}``.
"""

from __future__ import annotations


class ApiError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(ApiError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ApiError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class ValidationError(ApiError):
    """Malformed request body or identifier."""

    status_code = 400
    default_message = "Invalid request"


class TransientExternalError(ApiError):
    """A call to the asset host, storage or another third party failed."""

    status_code = 502
    default_message = "Upstream service failed"


class InternalError(ApiError):
    status_code = 500
    default_message = "Internal server error"
