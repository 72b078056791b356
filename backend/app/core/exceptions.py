"""
Application error taxonomy.

Services raise these; the handlers registered in ``app.main`` render them
as ``{"error": ..., "details": ...}`` JSON bodies.
"""

from typing import Any


class StoreError(Exception):
    """Base class for errors with a defined HTTP representation."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, details: Any = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(StoreError):
    """Malformed or missing input."""

    status_code = 400
    default_message = "Invalid request data"


class PaymentVerificationError(ValidationError):
    """Gateway signature did not match the submitted payload."""

    default_message = "Invalid payment signature"


class ConflictError(StoreError):
    """Unique field taken, or entity still referenced."""

    status_code = 400
    default_message = "Conflict"


class AuthenticationError(StoreError):
    """Missing, invalid, or insufficiently privileged token."""

    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(StoreError):
    status_code = 404
    default_message = "Not found"


class PaymentGatewayError(StoreError):
    status_code = 500
    default_message = "Failed to create payment order"


class ConfigurationError(StoreError):
    """Required setting is missing (e.g. the JWT signing secret)."""

    status_code = 500
    default_message = "Server misconfigured"
