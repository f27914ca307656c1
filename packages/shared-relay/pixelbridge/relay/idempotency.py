"""
Idempotency store for relayed conversions.

A Purchase is reported once by the browser pixel and once by the server,
and the server call may itself be retried by the storefront. Event ids
successfully forwarded are remembered for an hour so repeats are answered
without another outbound call. Expired entries are evicted lazily: on
lookup, and by a sweep that runs on roughly one request in ten.
"""

from __future__ import annotations

import logging
import random
import threading
from collections.abc import Callable

from pixelbridge.tracking.events import now_ms
from pixelbridge.tracking.storage import InMemoryStore, KeyValueStore

logger = logging.getLogger(__name__)

IDEMPOTENCY_TTL_MS = 60 * 60 * 1000  # 1 hour
SWEEP_PROBABILITY = 0.1


class IdempotencyStore:
    """Remembers forwarded event ids for a limited time.

    Entries map event_id -> first_seen_at (epoch ms). The server handles
    requests on a thread pool, so reserve() checks and claims an event id
    under one lock: a concurrent repeat sees the claim and is answered as a
    duplicate while the first delivery is in flight.

    Example:
        store = IdempotencyStore()
        if store.reserve(event_id):
            try:
                forward(event)
            except Exception:
                store.release(event_id)
                raise
            store.mark_processed(event_id)
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        ttl_ms: int = IDEMPOTENCY_TTL_MS,
        sweep_probability: float = SWEEP_PROBABILITY,
        clock: Callable[[], int] = now_ms,
        rng: Callable[[], float] = random.random,
    ):
        """
        Initialize store.

        Args:
            store: Backing key-value store (defaults to a process-local map)
            ttl_ms: How long an event id suppresses repeats
            sweep_probability: Chance that maybe_sweep() runs a sweep
            clock: Current time in epoch milliseconds
            rng: Uniform [0, 1) source deciding when to sweep
        """
        self.store = store if store is not None else InMemoryStore()
        self.ttl_ms = ttl_ms
        self.sweep_probability = sweep_probability
        self.clock = clock
        self.rng = rng
        self._lock = threading.Lock()
        self._in_flight: set[str] = set()

    def _expired(self, first_seen_at: int, now: int) -> bool:
        return now - first_seen_at > self.ttl_ms

    def _is_processed(self, event_id: str) -> bool:
        first_seen_at = self.store.get(event_id)
        if first_seen_at is None:
            return False
        if self._expired(first_seen_at, self.clock()):
            self.store.delete(event_id)
            return False
        return True

    def is_processed(self, event_id: str) -> bool:
        """Return True if event_id was forwarded within the TTL.

        An expired entry is removed and reported as not processed.
        """
        with self._lock:
            return self._is_processed(event_id)

    def reserve(self, event_id: str) -> bool:
        """Claim event_id for delivery.

        Returns:
            False if event_id was forwarded within the TTL or is already
            being delivered, True if the caller now owns the delivery
        """
        with self._lock:
            if event_id in self._in_flight or self._is_processed(event_id):
                return False
            self._in_flight.add(event_id)
            return True

    def release(self, event_id: str) -> None:
        """Drop a claim after a failed delivery so a retry can go through."""
        with self._lock:
            self._in_flight.discard(event_id)

    def mark_processed(self, event_id: str) -> None:
        """Record event_id as forwarded now and drop any claim on it."""
        with self._lock:
            self._in_flight.discard(event_id)
            self.store.set(event_id, self.clock())

    def sweep(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed
        """
        now = self.clock()
        removed = 0
        with self._lock:
            for event_id in list(self.store.keys()):
                first_seen_at = self.store.get(event_id)
                if first_seen_at is not None and self._expired(first_seen_at, now):
                    self.store.delete(event_id)
                    removed += 1
        if removed:
            logger.debug(f"Swept {removed} expired idempotency entries")
        return removed

    def maybe_sweep(self) -> int:
        """Sweep with probability sweep_probability."""
        if self.rng() < self.sweep_probability:
            return self.sweep()
        return 0

    def __len__(self) -> int:
        return sum(1 for _ in self.store.keys())
