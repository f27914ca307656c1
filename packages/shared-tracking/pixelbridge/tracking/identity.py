"""
Visitor identity and session records.

A visitor is identified by a long-lived device id persisted in the client
store and a per-visit session id. Sessions capture where the visit came from
(referrer, landing page, campaign parameters) and what it runs on (device
class, OS and browser family derived from the user agent).
"""

from __future__ import annotations

import logging
import re
import secrets
import string
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pixelbridge.tracking.campaigns import CampaignParams, get_utm_params
from pixelbridge.tracking.events import CanonicalEvent, TrackedEvent, now_ms
from pixelbridge.tracking.storage import KeyValueStore

logger = logging.getLogger(__name__)

DEVICE_ID_KEY = "device_id"

_BASE36_ALPHABET = string.digits + string.ascii_lowercase

# Tablets are checked first: tablet user agents usually match the mobile
# pattern as well.
TABLET_PATTERN = re.compile(r"(tablet|ipad|playbook|silk)|(android(?!.*mobi))", re.IGNORECASE)
MOBILE_PATTERN = re.compile(
    r"Mobile|Android|iP(hone|od)|IEMobile|BlackBerry|Kindle|Silk-Accelerated|(hpw|web)OS|Opera M(obi|ini)"
)

# Ordered (marker, family) lists: the first marker found in the user agent wins
OS_MARKERS = (
    ("Win", "Windows"),
    ("Mac", "MacOS"),
    ("Linux", "Linux"),
    ("Android", "Android"),
    ("iOS", "iOS"),
)
BROWSER_MARKERS = (
    ("Firefox", "Firefox"),
    ("Chrome", "Chrome"),
    ("Safari", "Safari"),
    ("Edge", "Edge"),
)
UNKNOWN = "Unknown"


class DeviceType(str, Enum):
    """Device class derived from the user agent."""

    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"


@dataclass
class DeviceInfo:
    """Device class, OS and browser family of a visit."""

    type: DeviceType = DeviceType.DESKTOP
    os: str = UNKNOWN
    browser: str = UNKNOWN

    @classmethod
    def from_user_agent(cls, user_agent: str | None) -> DeviceInfo:
        """Classify a user-agent string."""
        ua = user_agent or ""
        return cls(
            type=detect_device_type(ua),
            os=_first_marker(ua, OS_MARKERS),
            browser=_first_marker(ua, BROWSER_MARKERS),
        )

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type.value, "os": self.os, "browser": self.browser}


def detect_device_type(user_agent: str) -> DeviceType:
    """Classify a user agent as tablet, mobile or desktop."""
    if TABLET_PATTERN.search(user_agent):
        return DeviceType.TABLET
    if MOBILE_PATTERN.search(user_agent):
        return DeviceType.MOBILE
    return DeviceType.DESKTOP


def _first_marker(user_agent: str, markers: tuple[tuple[str, str], ...]) -> str:
    for marker, family in markers:
        if marker in user_agent:
            return family
    return UNKNOWN


def random_base36(length: int = 9) -> str:
    """Random lower-case base36 string."""
    return "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(length))


def generate_device_id(now: int | None = None) -> str:
    """Generate a device id: device-<epoch ms>-<random base36>."""
    return f"device-{now if now is not None else now_ms()}-{random_base36()}"


def generate_session_id(now: int | None = None) -> str:
    """Generate a session id: <epoch ms>-<random base36>."""
    return f"{now if now is not None else now_ms()}-{random_base36()}"


@dataclass
class SessionRecord:
    """One visit."""

    session_id: str
    device_id: str
    start_time: int
    last_activity: int
    page_views: int = 0
    events: list[TrackedEvent] = field(default_factory=list)
    referrer: str = ""
    landing_page: str = ""
    current_page: str = ""
    utm_params: CampaignParams = field(default_factory=CampaignParams)
    device: DeviceInfo = field(default_factory=DeviceInfo)

    def record_event(
        self,
        event: CanonicalEvent,
        data: dict[str, Any] | None = None,
        now: int | None = None,
    ) -> TrackedEvent:
        """Append an event to the session and bump last activity."""
        tracked = TrackedEvent(
            event=event,
            timestamp=now if now is not None else now_ms(),
            data=dict(data or {}),
        )
        self.events.append(tracked)
        self.last_activity = tracked.timestamp
        if event == CanonicalEvent.PAGE_VIEW:
            self.page_views += 1
        return tracked

    def to_dict(self) -> dict[str, Any]:
        """Snapshot for the server-side event sink."""
        return {
            "sessionId": self.session_id,
            "deviceId": self.device_id,
            "startTime": self.start_time,
            "lastActivity": self.last_activity,
            "pageViews": self.page_views,
            "events": [e.to_dict() for e in self.events],
            "referrer": self.referrer,
            "landingPage": self.landing_page,
            "currentPage": self.current_page,
            "utmParams": self.utm_params.to_dict(),
            "device": self.device.to_dict(),
        }


class IdentityStore:
    """Device identity and session construction over a client store.

    No network or blocking I/O: the device id lives in the store, sessions
    are built from the visit's own attributes.

    Example:
        identity = IdentityStore(InMemoryStore())
        session = identity.start_session(
            user_agent=request_ua,
            landing_url="https://shop.example/?utm_source=google",
        )
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def get_or_create_device_id(self, now: int | None = None) -> str:
        """Return the persisted device id, creating it on first use."""
        device_id = self.store.get(DEVICE_ID_KEY)
        if device_id:
            return device_id

        device_id = generate_device_id(now)
        self.store.set(DEVICE_ID_KEY, device_id)
        logger.debug(f"Created device id {device_id}")
        return device_id

    def start_session(
        self,
        user_agent: str | None = None,
        referrer: str | None = None,
        landing_url: str | None = None,
        now: int | None = None,
    ) -> SessionRecord:
        """
        Start a new visit.

        Args:
            user_agent: Client user-agent string
            referrer: Referring URL
            landing_url: URL of the first page of the visit
            now: Start time in epoch milliseconds (defaults to now)

        Returns:
            New SessionRecord with a fresh session id
        """
        started = now if now is not None else now_ms()
        return SessionRecord(
            session_id=generate_session_id(started),
            device_id=self.get_or_create_device_id(started),
            start_time=started,
            last_activity=started,
            referrer=referrer or "",
            landing_page=landing_url or "",
            current_page=landing_url or "",
            utm_params=get_utm_params(landing_url or ""),
            device=DeviceInfo.from_user_agent(user_agent),
        )
