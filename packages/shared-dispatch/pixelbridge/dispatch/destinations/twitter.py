"""Twitter (X) Pixel destination."""

from __future__ import annotations

from pixelbridge.dispatch.base import TrackCallClient
from pixelbridge.dispatch.registry import get_registry
from pixelbridge.tracking.config import Platform
from pixelbridge.tracking.events import CanonicalEvent


class TwitterClient(TrackCallClient):
    """Client for the X Pixel: twq('track', event, data).

    Lead and CompleteRegistration are sent as the account's custom
    conversion event ids.
    """

    platform = Platform.TWITTER
    function = "twq"
    event_map = {
        **{event: event.value for event in CanonicalEvent},
        CanonicalEvent.LEAD: "tw-o8wu4-ofh3r",
        CanonicalEvent.COMPLETE_REGISTRATION: "tw-o8wu4-ofh3s",
    }


# Auto-register destination
get_registry().register(Platform.TWITTER, TwitterClient)
