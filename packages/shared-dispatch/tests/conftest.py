"""Pytest fixtures for shared-dispatch tests."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest
from pixelbridge.dispatch.base import CommandBuffer, DestinationClient, PixelCommand
from pixelbridge.dispatch.registry import DestinationRegistry
from pixelbridge.tracking.config import Platform, PlatformConfig, TrackingConfig
from pixelbridge.tracking.events import CanonicalEvent
from pixelbridge.tracking.storage import InMemoryStore


class RecordingClient(DestinationClient):
    """Destination client that records what it was asked to send."""

    platform = Platform.MIXPANEL
    event_map = {event: f"mapped_{event.value}" for event in CanonicalEvent}

    def __init__(self, config: PlatformConfig, transport: Any = None):
        super().__init__(config, transport)
        self.sent: list[tuple[str, dict[str, Any]]] = []

    def build_commands(
        self,
        event_name: str,
        data: dict[str, Any],
        event: CanonicalEvent,
    ) -> list[PixelCommand]:
        self.sent.append((event_name, data))
        return [PixelCommand("record", (event_name, data))]


@pytest.fixture
def buffer() -> CommandBuffer:
    """Command buffer with every platform loaded."""
    return CommandBuffer()


@pytest.fixture
def store() -> InMemoryStore:
    """Empty client store."""
    return InMemoryStore()


@pytest.fixture
def all_platforms_config() -> TrackingConfig:
    """Tracking configuration with every platform enabled."""
    return TrackingConfig(
        platforms={
            platform: PlatformConfig(
                platform=platform,
                tracking_id=f"{platform.value}-id",
                enabled=True,
            )
            for platform in Platform
        }
    )


@pytest.fixture
def recording_client() -> RecordingClient:
    """Recording client over a fresh buffer."""
    config = PlatformConfig(platform=Platform.MIXPANEL, tracking_id="tok", enabled=True)
    return RecordingClient(config, CommandBuffer())


@pytest.fixture
def fresh_registry() -> Generator[DestinationRegistry, None, None]:
    """Create a fresh registry instance for testing.

    Restores the global singleton after the test.
    """
    original = DestinationRegistry._instance
    DestinationRegistry._instance = None
    registry = DestinationRegistry()
    yield registry
    DestinationRegistry._instance = original


@pytest.fixture
def recording_client_class() -> type[RecordingClient]:
    """The RecordingClient class, for registry tests."""
    return RecordingClient
