"""Gateway error taxonomy.

Every error carries the HTTP status it maps to; the API layer renders them as
``{"success": false, "message": ...}`` bodies.
"""

from __future__ import annotations


class GatewayError(RuntimeError):
    """Base exception for failures surfaced to HTTP callers."""

    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_response(self) -> dict[str, object]:
        return {"success": False, "message": self.message}


class ValidationError(GatewayError):
    """Raised for malformed bodies or missing fields."""

    status_code = 400


class AuthError(GatewayError):
    """Raised when a bearer token is missing or wrong."""

    status_code = 401


class SignatureRejected(AuthError):
    """Raised when a signed or captcha-protected request is rejected."""

    status_code = 403


class RateLimited(GatewayError):
    """Raised when a client exhausted its request window."""

    status_code = 429

    def __init__(self, message: str, *, retry_after: int) -> None:
        super().__init__(message)
        self.retry_after = retry_after

    def to_response(self) -> dict[str, object]:
        body = super().to_response()
        body["retry_after"] = self.retry_after
        return body


class ConfigurationUnavailable(GatewayError):
    """Raised when an optional feature is not configured for this deployment."""

    status_code = 503


class StorageError(GatewayError):
    """Raised when a durable store fails. The message is safe to return."""

    status_code = 500
