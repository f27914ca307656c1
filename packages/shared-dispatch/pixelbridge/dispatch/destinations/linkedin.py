"""LinkedIn Insight Tag destination."""

from __future__ import annotations

import logging
from typing import Any

from pixelbridge.dispatch.base import DestinationClient, PixelCommand
from pixelbridge.dispatch.registry import get_registry
from pixelbridge.tracking.config import Platform
from pixelbridge.tracking.events import CanonicalEvent

logger = logging.getLogger(__name__)

# LinkedIn has no event vocabulary: every event is a conversion
CONVERSION = "conversion"


class LinkedInClient(DestinationClient):
    """Client for the LinkedIn Insight Tag: lintrk('track', {conversion_id}).

    Optional options:
        - conversion_id: Campaign Manager conversion id. Without it nothing
          is sent.
    """

    platform = Platform.LINKEDIN
    event_map = {event: CONVERSION for event in CanonicalEvent}

    def build_commands(
        self,
        event_name: str,
        data: dict[str, Any],
        event: CanonicalEvent,
    ) -> list[PixelCommand]:
        conversion_id = self.config.options.get("conversion_id")
        if not conversion_id:
            logger.debug(f"No LinkedIn conversion id configured, skipping {event.value}")
            return []
        return [PixelCommand("lintrk", ("track", {"conversion_id": conversion_id}))]


# Auto-register destination
get_registry().register(Platform.LINKEDIN, LinkedInClient)
