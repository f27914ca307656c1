"""
Conversion relay configuration.

The relay needs the Facebook pixel id and a Conversions API access token.
Both are validated for shape only; the platform is the final judge of
whether a token is valid.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping

from pydantic import BaseModel, Field

GRAPH_API_BASE_URL = "https://graph.facebook.com"
DEFAULT_GRAPH_API_VERSION = "v21.0"
DEFAULT_RELAY_TIMEOUT = 10.0  # seconds

PIXEL_ID_PATTERN = re.compile(r"^\d{15,16}$")
ACCESS_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
MIN_ACCESS_TOKEN_LENGTH = 50  # Exclusive


def validate_pixel_id(pixel_id: str | None) -> bool:
    """Return True if pixel_id looks like a Facebook pixel id (15-16 digits)."""
    return bool(pixel_id) and PIXEL_ID_PATTERN.match(pixel_id) is not None


def validate_access_token(token: str | None) -> bool:
    """Return True if token looks like a Conversions API access token."""
    if not token:
        return False
    return len(token) > MIN_ACCESS_TOKEN_LENGTH and ACCESS_TOKEN_PATTERN.match(token) is not None


class RelayConfig(BaseModel):
    """Configuration for the conversion relay."""

    pixel_id: str | None = None
    access_token: str | None = Field(default=None, repr=False)
    test_event_code: str | None = None
    graph_api_version: str = DEFAULT_GRAPH_API_VERSION
    timeout: float = DEFAULT_RELAY_TIMEOUT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RelayConfig:
        """Load configuration from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (for tests).
        """
        env = os.environ if environ is None else environ
        return cls(
            pixel_id=(env.get("FACEBOOK_PIXEL_ID") or "").strip() or None,
            access_token=(env.get("FACEBOOK_CONVERSION_API_TOKEN") or "").strip() or None,
            test_event_code=env.get("FACEBOOK_TEST_EVENT_CODE") or None,
            graph_api_version=env.get("FACEBOOK_GRAPH_API_VERSION") or DEFAULT_GRAPH_API_VERSION,
            timeout=float(env.get("PIXELBRIDGE_RELAY_TIMEOUT") or DEFAULT_RELAY_TIMEOUT),
        )

    @property
    def is_configured(self) -> bool:
        """True if both the pixel id and the access token are usable."""
        return validate_pixel_id(self.pixel_id) and validate_access_token(self.access_token)

    @property
    def test_mode(self) -> bool:
        """True if events are sent with a test event code."""
        return bool(self.test_event_code)

    @property
    def masked_pixel_id(self) -> str:
        """Pixel id safe for health output: ***<last4> or 'not set'."""
        if not self.pixel_id:
            return "not set"
        return f"***{self.pixel_id[-4:]}"

    @property
    def events_url(self) -> str:
        """Conversions API events endpoint for the configured pixel."""
        return f"{GRAPH_API_BASE_URL}/{self.graph_api_version}/{self.pixel_id}/events"
