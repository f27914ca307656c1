"""Pytest fixtures for shared-relay tests."""

from __future__ import annotations

from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest
from pixelbridge.relay.config import RelayConfig
from pixelbridge.relay.idempotency import IdempotencyStore
from pixelbridge.relay.relay import ConversionRelay

PIXEL_ID = "123456789012345"
ACCESS_TOKEN = "EAAB" + "x" * 60


class Clock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, now: int = 1_736_899_200_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def relay_config() -> RelayConfig:
    """Fully configured relay."""
    return RelayConfig(pixel_id=PIXEL_ID, access_token=ACCESS_TOKEN)


@pytest.fixture
def clock() -> Clock:
    """Controllable clock."""
    return Clock()


@pytest.fixture
def idempotency(clock: Clock) -> IdempotencyStore:
    """Idempotency store that never sweeps on its own."""
    return IdempotencyStore(clock=clock, rng=lambda: 1.0)


@pytest.fixture
def relay(relay_config: RelayConfig, idempotency: IdempotencyStore) -> ConversionRelay:
    """Relay over the controllable idempotency store."""
    return ConversionRelay(relay_config, idempotency=idempotency)


def make_response(status_code: int = 200, body: dict | None = None) -> MagicMock:
    """Mock httpx.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    response.json.return_value = body if body is not None else {"events_received": 1, "fbtrace_id": "trace-1"}
    response.text = ""
    return response


@pytest.fixture
def mock_http() -> Generator[MagicMock, None, None]:
    """Patch httpx.Client; yields the client whose post() is called.

    post() answers 200 with a fbtrace_id unless reconfigured.
    """
    with patch("httpx.Client") as mock_client_class:
        client = MagicMock()
        client.__enter__ = MagicMock(return_value=client)
        client.__exit__ = MagicMock(return_value=False)
        client.post.return_value = make_response()
        mock_client_class.return_value = client
        yield client


@pytest.fixture
def response_factory():
    """Build mock httpx responses."""
    return make_response
