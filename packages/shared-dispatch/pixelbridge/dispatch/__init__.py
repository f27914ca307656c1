"""
PixelBridge Dispatch - fan canonical events out to ad and analytics platforms.

Provides:
- DestinationClient base class with per-platform event mapping tables
- Registry of destination clients built from TrackingConfig
- TrackingManager: session handling and concurrent fan-out
- EventSink: best-effort POST of every event to the storefront server

Supported destinations: Facebook, Google (GA4 / Ads), TikTok, Snapchat,
Pinterest, Twitter, LinkedIn, Reddit, Microsoft (UET), Mixpanel.

Usage:
    from pixelbridge.dispatch import CommandBuffer, TrackingManager
    from pixelbridge.tracking import InMemoryStore, TrackingConfig

    buffer = CommandBuffer()
    manager = TrackingManager(TrackingConfig.from_env(), InMemoryStore(), transport=buffer)
    manager.track("Purchase", {"value": 49.99, "currency": "USD", "event_id": event_id})
    manager.flush()
"""

from pixelbridge.dispatch.base import (
    CommandBuffer,
    DestinationClient,
    PixelCommand,
    PixelTransport,
    TrackCallClient,
)
from pixelbridge.dispatch.exceptions import DestinationUnavailableError, DispatchError
from pixelbridge.dispatch.manager import TrackingManager
from pixelbridge.dispatch.registry import DestinationRegistry, get_registry
from pixelbridge.dispatch.sink import EventSink

# Import destinations to trigger auto-registration
import pixelbridge.dispatch.destinations  # noqa: E402, F401, I001

__all__ = [
    # Base
    "DestinationClient",
    "TrackCallClient",
    "PixelCommand",
    "PixelTransport",
    "CommandBuffer",
    # Registry
    "DestinationRegistry",
    "get_registry",
    # Manager
    "TrackingManager",
    "EventSink",
    # Exceptions
    "DispatchError",
    "DestinationUnavailableError",
]
