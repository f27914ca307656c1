"""Pytest fixtures for shared-tracking tests."""

from __future__ import annotations

import pytest
from pixelbridge.tracking.behavior import BehaviorTracker
from pixelbridge.tracking.campaigns import TouchpointLedger
from pixelbridge.tracking.events import MS_PER_DAY
from pixelbridge.tracking.storage import InMemoryStore

# Fixed reference time: 2025-01-15T00:00:00Z in epoch milliseconds
NOW_MS = 1_736_899_200_000


@pytest.fixture
def now_ms() -> int:
    """Fixed reference time for deterministic tests."""
    return NOW_MS


@pytest.fixture
def day_ms() -> int:
    """Milliseconds per day."""
    return MS_PER_DAY


@pytest.fixture
def store() -> InMemoryStore:
    """Empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def ledger(store: InMemoryStore) -> TouchpointLedger:
    """Touchpoint ledger over an empty store."""
    return TouchpointLedger(store)


@pytest.fixture
def tracker(store: InMemoryStore) -> BehaviorTracker:
    """Behavior tracker for a single test identity."""
    return BehaviorTracker(store, device_id="device-1", session_id="session-1")
