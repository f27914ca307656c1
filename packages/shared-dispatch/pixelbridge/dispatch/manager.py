"""
Tracking manager - fans canonical events out to every enabled destination.

track(event, data) runs, in order:
1. Start the session if none is active
2. Append the event to the session and bump last activity
3. Merge the session's arrival campaign parameters into the data
4. Send the mapped event to every enabled destination concurrently
5. POST the event and session snapshot to the server-side sink

Destination and sink calls run on a thread pool and are not joined before
track() returns. A failing or unavailable destination never affects the
others or the caller, and neither does a failed behavior update.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any

from pixelbridge.dispatch.base import DestinationClient, PixelTransport
from pixelbridge.dispatch.exceptions import DestinationUnavailableError
from pixelbridge.dispatch.registry import get_registry
from pixelbridge.dispatch.sink import EventSink
from pixelbridge.tracking.behavior import BehaviorTracker
from pixelbridge.tracking.campaigns import TouchpointLedger
from pixelbridge.tracking.config import Platform, TrackingConfig
from pixelbridge.tracking.events import CanonicalEvent, TrackedEvent, now_ms
from pixelbridge.tracking.identity import IdentityStore, SessionRecord
from pixelbridge.tracking.storage import KeyValueStore

logger = logging.getLogger(__name__)


class TrackingManager:
    """Per-visitor tracking engine.

    Can be used as a context manager; close() waits for in-flight calls.

    Example:
        config = TrackingConfig.from_env()
        buffer = CommandBuffer()

        with TrackingManager(config, InMemoryStore(), transport=buffer) as manager:
            manager.start_session(user_agent=ua, landing_url=url)
            manager.track("AddToCart", {"product_id": "sku-1", "value": 20})

        print(buffer.render())
    """

    def __init__(
        self,
        config: TrackingConfig,
        store: KeyValueStore,
        transport: PixelTransport | None = None,
        clients: dict[Platform, DestinationClient] | None = None,
        sink: EventSink | None = None,
        executor: ThreadPoolExecutor | None = None,
    ):
        """
        Initialize manager.

        Args:
            config: Tracking configuration
            store: Client store for identity, touchpoints and behavior
            transport: Pixel command transport for the destination clients
            clients: Destination clients (defaults to the registry's clients
                for every enabled platform)
            sink: Server-side event sink (defaults to one for
                config.events_endpoint, if set)
            executor: Thread pool for destination and sink calls
        """
        self.config = config
        self.store = store
        self.identity = IdentityStore(store)
        self.ledger = TouchpointLedger(store)
        self.behavior = BehaviorTracker(store)
        self.clients = (
            clients if clients is not None else get_registry().build_clients(config, transport)
        )
        if sink is None and config.events_endpoint:
            sink = EventSink(config.events_endpoint, timeout=config.sink_timeout)
        self.sink = sink

        self._executor = executor or ThreadPoolExecutor(
            max_workers=config.max_workers,
            thread_name_prefix="pixelbridge-dispatch",
        )
        self._owns_executor = executor is None
        self._pending: set[Future[Any]] = set()
        self._pending_lock = threading.Lock()
        self.session: SessionRecord | None = None

    def __enter__(self) -> TrackingManager:
        """Enter context manager."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit context manager and wait for in-flight calls."""
        self.close()

    def start_session(
        self,
        user_agent: str | None = None,
        referrer: str | None = None,
        landing_url: str | None = None,
        now: int | None = None,
    ) -> SessionRecord:
        """
        Start a visit.

        Records the arrival campaign parameters as a touchpoint and counts
        the visit in the behavior record.

        Args:
            user_agent: Client user-agent string
            referrer: Referring URL
            landing_url: URL of the first page of the visit
            now: Start time in epoch milliseconds (defaults to now)

        Returns:
            The new session
        """
        session = self.identity.start_session(
            user_agent=user_agent,
            referrer=referrer,
            landing_url=landing_url,
            now=now,
        )
        self.session = session
        self.ledger.record_arrival_params(session.utm_params, now=session.start_time)
        self.behavior.device_id = session.device_id
        self.behavior.record_session(session.session_id, now=session.start_time)
        logger.debug(f"Started session {session.session_id} for {session.device_id}")
        return session

    def track(
        self,
        event_name: CanonicalEvent | str,
        data: dict[str, Any] | None = None,
        now: int | None = None,
    ) -> TrackedEvent:
        """
        Track a canonical event across all enabled destinations.

        Args:
            event_name: Canonical event (e.g. "Purchase")
            data: Event data
            now: Event time in epoch milliseconds (defaults to now)

        Returns:
            The event as appended to the session

        Raises:
            ValueError: If event_name is not a canonical event
        """
        event = CanonicalEvent.parse(event_name)
        now = now if now is not None else now_ms()

        if self.session is None:
            self.start_session(now=now)
        session = self.session
        assert session is not None

        tracked = session.record_event(event, data, now)

        enriched = {**(data or {}), **session.utm_params.to_dict()}

        try:
            self.behavior.track_event(event, data, now)
        except Exception:
            logger.exception(f"Failed to update behavior for {event.value}")

        for client in self.clients.values():
            self._submit(self._send_to_destination, client, event, dict(enriched))

        if self.sink is not None:
            payload = {
                "event": event.value,
                "data": enriched,
                "session": session.to_dict(),
                "timestamp": now,
            }
            self._submit(self._send_to_sink, payload)

        return tracked

    def flush(self, timeout: float | None = None) -> bool:
        """
        Wait for in-flight destination and sink calls.

        Args:
            timeout: Maximum seconds to wait (None waits indefinitely)

        Returns:
            True if every call finished
        """
        with self._pending_lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self) -> None:
        """Wait for in-flight calls and release the thread pool."""
        self.flush()
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def _submit(self, fn: Any, *args: Any) -> None:
        future = self._executor.submit(fn, *args)
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._discard)

    def _discard(self, future: Future[Any]) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def _send_to_destination(
        self,
        client: DestinationClient,
        event: CanonicalEvent,
        data: dict[str, Any],
    ) -> None:
        try:
            client.send(event, data)
        except DestinationUnavailableError:
            logger.debug(f"Skipping {client.platform.value}: client not loaded")
        except Exception:
            logger.exception(f"Failed to send {event.value} to {client.platform.value}")

    def _send_to_sink(self, payload: dict[str, Any]) -> None:
        try:
            self.sink.post_event(payload)  # type: ignore[union-attr]
        except Exception:
            logger.exception(f"Failed to store {payload['event']} event")
