"""Facebook (Meta) Pixel destination."""

from __future__ import annotations

from typing import Any

from pixelbridge.dispatch.base import DestinationClient, PixelCommand
from pixelbridge.dispatch.registry import get_registry
from pixelbridge.tracking.config import Platform
from pixelbridge.tracking.events import CanonicalEvent


class FacebookClient(DestinationClient):
    """Client for the Meta Pixel (fbq).

    Canonical event names are Meta's standard event names. When the event
    data carries an event_id it is passed as the eventID option, the key
    Meta uses to deduplicate the pixel and Conversions API deliveries of
    the same conversion.

    Example:
        fbq('track', 'Purchase', {"value": 49.99}, {"eventID": "evt-1"})
    """

    platform = Platform.FACEBOOK
    event_map = {event: event.value for event in CanonicalEvent}

    def build_commands(
        self,
        event_name: str,
        data: dict[str, Any],
        event: CanonicalEvent,
    ) -> list[PixelCommand]:
        event_id = data.pop("event_id", None)
        args: tuple[Any, ...] = ("track", event_name, data)
        if event_id:
            args = (*args, {"eventID": event_id})
        return [PixelCommand("fbq", args)]


# Auto-register destination
get_registry().register(Platform.FACEBOOK, FacebookClient)
