"""Pytest fixtures for relay-server tests."""

from __future__ import annotations

from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from pixelbridge.relay.config import RelayConfig
from pixelbridge.relay.idempotency import IdempotencyStore
from pixelbridge.relay.relay import ConversionRelay
from pixelbridge.tracking.config import TrackingConfig
from pixelbridge.tracking.storage import InMemoryStore
from pixelbridge_server.app import create_app


@pytest.fixture
def store() -> InMemoryStore:
    """Shared behavior store."""
    return InMemoryStore()


@pytest.fixture
def relay() -> ConversionRelay:
    """Configured relay that never sweeps on its own."""
    config = RelayConfig(pixel_id="123456789012345", access_token="EAAB" + "x" * 60)
    return ConversionRelay(config, idempotency=IdempotencyStore(rng=lambda: 1.0))


@pytest.fixture
def client(relay: ConversionRelay, store: InMemoryStore) -> TestClient:
    """Create a test client for the FastAPI app."""
    tracking_config = TrackingConfig.from_env({"FACEBOOK_PIXEL_ID": "123456789012345"})
    return TestClient(create_app(tracking_config, relay=relay, store=store))


@pytest.fixture
def mock_http() -> Generator[MagicMock, None, None]:
    """Patch httpx.Client for the relay's outbound call."""
    with patch("httpx.Client") as mock_client_class:
        client = MagicMock()
        client.__enter__ = MagicMock(return_value=client)
        client.__exit__ = MagicMock(return_value=False)
        response = MagicMock()
        response.status_code = 200
        response.is_success = True
        response.json.return_value = {"events_received": 1, "fbtrace_id": "trace-1"}
        client.post.return_value = response
        mock_client_class.return_value = client
        yield client
