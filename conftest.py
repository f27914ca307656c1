"""Shared pytest fixtures for PixelBridge packages."""

import pytest
from unittest.mock import MagicMock, patch


@pytest.fixture
def mock_httpx_client():
    """Mock httpx.Client used as a context manager; post() answers 200."""
    with patch("httpx.Client") as mock:
        client = MagicMock()
        client.__enter__ = MagicMock(return_value=client)
        client.__exit__ = MagicMock(return_value=False)
        response = MagicMock()
        response.status_code = 200
        response.is_success = True
        response.json.return_value = {"events_received": 1, "fbtrace_id": "trace-root"}
        client.post.return_value = response
        mock.return_value = client
        yield client


@pytest.fixture
def sample_environ():
    """Environment with the relay and three destinations configured."""
    return {
        "FACEBOOK_PIXEL_ID": "123456789012345",
        "FACEBOOK_CONVERSION_API_TOKEN": "EAAB" + "a" * 60,
        "GA4_MEASUREMENT_ID": "G-TEST123",
        "GOOGLE_ADS_CONVERSION_ID": "AW-123",
        "GOOGLE_ADS_CONVERSION_LABEL": "purchase",
        "TIKTOK_PIXEL_ID": "CTEST",
    }


@pytest.fixture
def sample_purchase():
    """Checkout purchase as reported to both the pixel and the relay."""
    return {
        "event_id": "3f1c9a52-6b0e-4b8e-9a3c-0d2f5e7a1b44",
        "value": 149.5,
        "currency": "USD",
        "order_id": "ORD-1001",
        "content_ids": ["sku-1", "sku-2"],
        "num_items": 2,
        "email": "buyer@example.com",
    }
