"""
Error taxonomy for Consult Scribe.

Request-level errors carry the HTTP status the ingest endpoint answers with.
Everything else is collapsed into a generic failure at the outer boundary.
"""

from typing import Any, Dict, Optional


class ScribeError(Exception):
    """Base exception for the service."""

    http_status: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(ScribeError):
    """A required secret or key is missing."""


class IngestDisabledError(ScribeError):
    http_status = 503

    def __init__(self, message: str = "Ingest endpoint is disabled") -> None:
        super().__init__(message)


class AuthError(ScribeError):
    http_status = 401

    def __init__(self, message: str = "Unauthorized", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)


class ValidationError(ScribeError):
    """Input or AI response failed validation."""

    http_status = 400


class UnsupportedMediaTypeError(ValidationError):
    http_status = 415


class PayloadTooLargeError(ValidationError):
    http_status = 413


class EmptyPayloadError(ValidationError):
    http_status = 400


class MalformedResponseError(ValidationError):
    """The AI capability returned output that does not match the schema."""

    http_status = 500


class EncodingError(ScribeError):
    """The media source could not be read."""


class ProviderError(ScribeError):
    """The AI capability call failed."""


class DeliveryError(ScribeError):
    """Webhook delivery failed. Never fatal."""


# Errors the ingest endpoint reports with their own status code
REQUEST_ERRORS = (
    IngestDisabledError,
    AuthError,
    UnsupportedMediaTypeError,
    PayloadTooLargeError,
    EmptyPayloadError,
)
