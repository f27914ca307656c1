"""
PixelBridge Relay - server-side conversion delivery with deduplication.

Provides:
- ConversionRelay: validates, hashes PII and forwards one conversion to the
  Facebook Conversions API
- IdempotencyStore: suppresses repeated Purchase deliveries for an hour
- RelayConfig: pixel id, access token and test code from the environment
- Helpers for the storefront: event ids, cookie ids, client IP, URL cleanup

Usage:
    from pixelbridge.relay import ConversionRelay, RelayConfig, generate_event_id

    event_id = generate_event_id()  # also sent by the pixel as eventID
    relay = ConversionRelay(RelayConfig.from_env())
    result = relay.relay({"eventName": "Purchase", "eventId": event_id, "value": 49.99})
"""

from pixelbridge.relay.config import RelayConfig, validate_access_token, validate_pixel_id
from pixelbridge.relay.exceptions import (
    ConfigurationError,
    DestinationRejected,
    RelayError,
    ValidationError,
)
from pixelbridge.relay.hashing import build_user_data, hash_email, hash_phone, hash_sha256
from pixelbridge.relay.idempotency import IDEMPOTENCY_TTL_MS, IdempotencyStore
from pixelbridge.relay.relay import ConversionRelay
from pixelbridge.relay.schema import ConversionRequest, RelayResult, format_currency
from pixelbridge.relay.utils import (
    extract_fbc,
    extract_fbp,
    format_contents,
    generate_event_id,
    get_client_ip,
    sanitize_url,
)

__all__ = [
    # Relay
    "ConversionRelay",
    "ConversionRequest",
    "RelayResult",
    # Configuration
    "RelayConfig",
    "validate_pixel_id",
    "validate_access_token",
    # Idempotency
    "IdempotencyStore",
    "IDEMPOTENCY_TTL_MS",
    # Hashing
    "hash_sha256",
    "hash_email",
    "hash_phone",
    "build_user_data",
    # Helpers
    "generate_event_id",
    "sanitize_url",
    "format_currency",
    "format_contents",
    "extract_fbc",
    "extract_fbp",
    "get_client_ip",
    # Exceptions
    "RelayError",
    "ConfigurationError",
    "ValidationError",
    "DestinationRejected",
]
