"""Custom exceptions for the conversion relay."""

from __future__ import annotations


class RelayError(Exception):
    """Base exception for relay errors."""

    status_code = 500
    error_code = "RELAY_ERROR"


class ConfigurationError(RelayError):
    """Raised when the pixel id or access token is missing or malformed."""

    error_code = "INVALID_CONFIG"


class ValidationError(RelayError):
    """Raised when a conversion request lacks eventName or eventId."""

    status_code = 400
    error_code = "INVALID_PAYLOAD"


class DestinationRejected(RelayError):
    """Raised when the ad platform answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Destination rejected event with HTTP {status_code}")
        self.status_code = status_code
        self.error_code = body
        self.body = body
