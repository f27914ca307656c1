"""Helpers for storefront code that feeds the relay."""

from __future__ import annotations

import re
import uuid
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pixelbridge.relay.schema import format_currency

SENSITIVE_PARAMS = frozenset({"email", "token", "password", "key", "secret"})

# Checked in order; x-forwarded-for may list proxies after the client
CLIENT_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "x-vercel-forwarded-for")

FBC_COOKIE = re.compile(r"_fbc=([^;]+)")
FBP_COOKIE = re.compile(r"_fbp=([^;]+)")


def generate_event_id() -> str:
    """New event id shared by the pixel and the relay for one conversion."""
    return str(uuid.uuid4())


def sanitize_url(url: str) -> str:
    """Strip sensitive query parameters (email, token, ...) from a URL.

    Unparseable input is returned unchanged.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url

    query = [
        (name, value)
        for name, value in parse_qsl(parts.query, keep_blank_values=True)
        if name not in SENSITIVE_PARAMS
    ]
    return urlunsplit(parts._replace(query=urlencode(query)))


def format_contents(items: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Convert cart items {id, quantity, price} into {id, quantity, item_price}."""
    return [
        {
            "id": item["id"],
            "quantity": item["quantity"],
            "item_price": format_currency(item.get("price")) or 0,
        }
        for item in items
    ]


def extract_fbc(cookies: str | None) -> str | None:
    """Facebook click id from a Cookie header (_fbc)."""
    if not cookies:
        return None
    match = FBC_COOKIE.search(cookies)
    return match.group(1) if match else None


def extract_fbp(cookies: str | None) -> str | None:
    """Facebook browser id from a Cookie header (_fbp)."""
    if not cookies:
        return None
    match = FBP_COOKIE.search(cookies)
    return match.group(1) if match else None


def get_client_ip(headers: Mapping[str, str]) -> str | None:
    """Client IP address from proxy headers, or None.

    Args:
        headers: Request headers. Lookups are by lower-case name, so pass a
            case-insensitive mapping (e.g. Starlette's Headers) or
            lower-cased keys.
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    for header in CLIENT_IP_HEADERS[1:]:
        value = headers.get(header)
        if value:
            return value
    return None
