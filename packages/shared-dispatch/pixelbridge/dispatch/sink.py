"""Server-side event sink.

Every tracked event is also POSTed, with the session snapshot, to a storage
endpoint on the storefront's own server. Delivery is best effort: failures
are logged and never retried or surfaced to the caller.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

SINK_TIMEOUT = httpx.Timeout(5.0, connect=2.0)  # 5s read, 2s connect


class EventSink:
    """POSTs tracked events to the server-side storage endpoint.

    Example:
        sink = EventSink("https://shop.example/tracking/events")
        sink.post_event({"event": "Purchase", "data": {...}, "session": {...},
                         "timestamp": 1736899200000})
    """

    def __init__(self, endpoint: str, timeout: float | httpx.Timeout | None = None):
        """
        Initialize sink.

        Args:
            endpoint: Absolute URL of the storage endpoint
            timeout: Request timeout in seconds (or httpx.Timeout)
        """
        self.endpoint = endpoint
        if timeout is None:
            self.timeout = SINK_TIMEOUT
        elif isinstance(timeout, httpx.Timeout):
            self.timeout = timeout
        else:
            self.timeout = httpx.Timeout(timeout, connect=min(timeout, 2.0))

    def post_event(self, payload: dict[str, Any]) -> bool:
        """
        Store one event.

        Args:
            payload: {event, data, session, timestamp}

        Returns:
            True if the endpoint accepted the event, False otherwise
        """
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.endpoint, json=payload)
                response.raise_for_status()
            return True
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"Event sink rejected {payload.get('event')}: "
                f"HTTP {e.response.status_code}"
            )
        except httpx.HTTPError as e:
            logger.warning(f"Failed to send {payload.get('event')} to event sink: {e}")
        return False
