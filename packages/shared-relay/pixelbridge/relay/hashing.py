"""
PII normalization and hashing.

Ad platforms match conversions to accounts on SHA-256 hashes of normalized
customer data. Raw values are hashed here and never leave the process.
"""

from __future__ import annotations

import hashlib
import re
from typing import Any

from pixelbridge.relay.schema import ConversionRequest

WHITESPACE = re.compile(r"\s")
NON_DIGITS = re.compile(r"\D")


def hash_sha256(value: str | None) -> str | None:
    """Trim, lower-case and hash a value. None for empty input."""
    if not value or not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    if not normalized:
        return None
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def hash_email(email: str | None) -> str | None:
    """Hash an email address with all whitespace removed."""
    if not email:
        return None
    return hash_sha256(WHITESPACE.sub("", email.lower()))


def hash_phone(phone: str | None) -> str | None:
    """Hash a phone number reduced to its digits.

    "+1 (555) 123-4567" is hashed as "15551234567".
    """
    if not phone:
        return None
    digits = NON_DIGITS.sub("", phone)
    return hash_sha256(digits) if digits else None


def build_user_data(
    request: ConversionRequest,
    client_ip: str | None = None,
    user_agent: str | None = None,
) -> dict[str, Any]:
    """
    Build the platform's user_data block for a conversion.

    Args:
        request: Conversion request carrying raw PII
        client_ip: Client IP address (forwarded unhashed)
        user_agent: Client user agent (forwarded unhashed)

    Returns:
        Hashed identifiers plus browser ids, with undefined keys dropped
    """
    email = hash_email(request.email)
    phone = hash_phone(request.phone)
    user_data = {
        "em": [email] if email else None,
        "ph": [phone] if phone else None,
        "fn": hash_sha256(request.first_name),
        "ln": hash_sha256(request.last_name),
        "ct": hash_sha256(request.city),
        "st": hash_sha256(request.state),
        "zp": hash_sha256(request.zip_code),
        "country": hash_sha256(request.country),
        "fbc": request.fbc,
        "fbp": request.fbp,
        "client_ip_address": client_ip,
        "client_user_agent": user_agent,
    }
    return {k: v for k, v in user_data.items() if v is not None}
