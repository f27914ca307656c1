"""Mixpanel destination."""

from __future__ import annotations

from pixelbridge.dispatch.base import TrackCallClient
from pixelbridge.dispatch.registry import get_registry
from pixelbridge.tracking.config import Platform
from pixelbridge.tracking.events import CanonicalEvent


class MixpanelClient(TrackCallClient):
    """Client for Mixpanel: mixpanel.track(event, data).

    Mixpanel takes free-form event names, so canonical names pass through.
    """

    platform = Platform.MIXPANEL
    function = "mixpanel.track"
    leading_args = ()
    event_map = {event: event.value for event in CanonicalEvent}


# Auto-register destination
get_registry().register(Platform.MIXPANEL, MixpanelClient)
