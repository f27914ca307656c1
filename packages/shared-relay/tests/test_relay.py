"""Tests for pixelbridge.relay.relay."""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time

import httpx
import pytest
from pixelbridge.relay.config import RelayConfig
from pixelbridge.relay.idempotency import IDEMPOTENCY_TTL_MS
from pixelbridge.relay.relay import ConversionRelay
from pixelbridge.relay.schema import ConversionRequest

EVENTS_URL = "https://graph.facebook.com/v21.0/123456789012345/events"

PURCHASE = {
    "eventName": "Purchase",
    "eventId": "evt-123",
    "email": " Jane.Doe@Example.com ",
    "phone": "+1 (555) 123-4567",
    "firstName": "Jane",
    "lastName": "Doe",
    "city": "Austin",
    "state": "TX",
    "zipCode": "78701",
    "country": "US",
    "fbc": "fb.1.1700000000.abc",
    "fbp": "fb.1.1700000000.123",
    "value": 49.999,
    "contentIds": ["sku-1"],
    "numItems": 1,
    "orderId": "order-9",
    "eventSourceUrl": "https://shop.example/checkout/success",
}


def sha256(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def sent_payload(mock_http) -> dict:
    """Body of the last outbound call."""
    _, kwargs = mock_http.post.call_args
    return kwargs["json"]


class TestValidation:
    """Tests for configuration and payload validation."""

    def test_unconfigured_returns_invalid_config(self, mock_http, idempotency) -> None:
        """Test missing secrets answer 500 INVALID_CONFIG without an outbound call."""
        relay = ConversionRelay(RelayConfig(), idempotency=idempotency)

        result = relay.relay(PURCHASE)

        assert result.success is False
        assert result.status_code == 500
        assert result.error == "INVALID_CONFIG"
        mock_http.post.assert_not_called()

    def test_malformed_token_is_unconfigured(self, mock_http, idempotency) -> None:
        """Test a too-short token counts as not configured."""
        config = RelayConfig(pixel_id="123456789012345", access_token="short")

        result = ConversionRelay(config, idempotency=idempotency).relay(PURCHASE)

        assert result.status_code == 500

    def test_config_checked_before_payload(self, mock_http, idempotency) -> None:
        """Test configuration errors win over payload errors."""
        result = ConversionRelay(RelayConfig(), idempotency=idempotency).relay({})

        assert result.error == "INVALID_CONFIG"

    @pytest.mark.parametrize("missing", ["eventName", "eventId"])
    def test_missing_required_field(self, relay, mock_http, missing) -> None:
        """Test a missing eventName or eventId answers 400 without an outbound call."""
        body = {k: v for k, v in PURCHASE.items() if k != missing}

        result = relay.relay(body)

        assert result.status_code == 400
        assert result.error == "INVALID_PAYLOAD"
        assert result.to_dict() == {"success": False, "error": "INVALID_PAYLOAD"}
        mock_http.post.assert_not_called()

    def test_malformed_field(self, relay, mock_http) -> None:
        """Test a wrongly typed field answers 400."""
        result = relay.relay({**PURCHASE, "numItems": "several"})

        assert result.status_code == 400
        assert result.error == "INVALID_PAYLOAD"
        mock_http.post.assert_not_called()

    def test_accepts_model(self, relay, mock_http) -> None:
        """Test a ConversionRequest can be passed directly."""
        request = ConversionRequest(event_name="Lead", event_id="evt-lead")

        assert relay.relay(request).success is True


class TestIdempotency:
    """Tests for Purchase deduplication."""

    def test_repeated_purchase_forwarded_once(self, relay, mock_http) -> None:
        """Test N deliveries of one Purchase make exactly one outbound call."""
        results = [relay.relay(PURCHASE) for _ in range(5)]

        assert mock_http.post.call_count == 1
        assert all(r.success for r in results)
        assert [r.duplicate for r in results] == [False, True, True, True, True]
        assert results[1].to_dict() == {"success": True, "eventId": "evt-123", "duplicate": True}

    def test_other_events_not_deduplicated(self, relay, mock_http) -> None:
        """Test only Purchase is deduplicated."""
        lead = {"eventName": "Lead", "eventId": "evt-lead"}

        relay.relay(lead)
        relay.relay(lead)

        assert mock_http.post.call_count == 2

    def test_purchase_forwarded_again_after_ttl(self, relay, mock_http, clock) -> None:
        """Test an entry older than the TTL no longer suppresses."""
        relay.relay(PURCHASE)
        clock.advance(IDEMPOTENCY_TTL_MS)
        relay.relay(PURCHASE)

        assert mock_http.post.call_count == 1

        clock.advance(1)
        result = relay.relay(PURCHASE)

        assert mock_http.post.call_count == 2
        assert result.duplicate is False

    def test_rejected_purchase_not_marked(self, relay, mock_http, response_factory) -> None:
        """Test a failed delivery can be retried by the storefront."""
        mock_http.post.return_value = response_factory(500, {"error": {"message": "boom"}})
        relay.relay(PURCHASE)

        mock_http.post.return_value = response_factory()
        result = relay.relay(PURCHASE)

        assert mock_http.post.call_count == 2
        assert result.success is True
        assert result.duplicate is False

    def test_concurrent_purchases_forwarded_once(self, relay, mock_http, response_factory) -> None:
        """Test simultaneous deliveries of one Purchase make exactly one outbound call."""
        barrier = threading.Barrier(5)
        results = []
        results_lock = threading.Lock()

        def slow_post(*args, **kwargs):
            time.sleep(0.2)
            return response_factory()

        mock_http.post.side_effect = slow_post

        def deliver() -> None:
            barrier.wait()
            result = relay.relay({"eventName": "Purchase", "eventId": "evt-1"})
            with results_lock:
                results.append(result)

        threads = [threading.Thread(target=deliver) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert mock_http.post.call_count == 1
        assert all(r.success for r in results)
        assert sorted(r.duplicate for r in results) == [False, True, True, True, True]
        assert relay.idempotency.is_processed("evt-1")

    def test_transport_failure_releases_purchase(self, relay, mock_http, response_factory) -> None:
        """Test a Purchase that failed in transport can be delivered again."""
        mock_http.post.side_effect = httpx.ConnectError("refused")
        failed = relay.relay(PURCHASE)

        mock_http.post.side_effect = None
        mock_http.post.return_value = response_factory()
        result = relay.relay(PURCHASE)

        assert failed.success is False
        assert result.success is True
        assert result.duplicate is False
        assert mock_http.post.call_count == 3

    def test_sweep_runs_on_sampled_requests(self, relay_config, mock_http, clock) -> None:
        """Test expired entries are swept when the sample hits."""
        from pixelbridge.relay.idempotency import IdempotencyStore

        store = IdempotencyStore(clock=clock, rng=lambda: 0.05)
        relay = ConversionRelay(relay_config, idempotency=store)
        relay.relay({**PURCHASE, "eventId": "old"})
        clock.advance(IDEMPOTENCY_TTL_MS + 1)

        relay.relay({**PURCHASE, "eventId": "new"})

        assert len(store) == 1
        assert store.is_processed("new")


class TestOutboundPayload:
    """Tests for the Conversions API request."""

    def test_request_target(self, relay, mock_http) -> None:
        """Test URL, access token and timeout."""
        relay.relay(PURCHASE)

        args, kwargs = mock_http.post.call_args
        assert args == (EVENTS_URL,)
        assert kwargs["params"] == {"access_token": relay.config.access_token}
        assert relay.timeout == httpx.Timeout(10.0, connect=5.0)

    def test_event_envelope(self, relay, mock_http) -> None:
        """Test the single-event envelope."""
        relay.relay(PURCHASE)

        payload = sent_payload(mock_http)
        assert list(payload) == ["data"]
        (event,) = payload["data"]
        assert event["event_name"] == "Purchase"
        assert event["event_id"] == "evt-123"
        assert event["action_source"] == "website"
        assert event["event_source_url"] == "https://shop.example/checkout/success"
        assert isinstance(event["event_time"], int)

    def test_user_data_hashed(self, relay, mock_http) -> None:
        """Test PII is normalized and hashed, browser ids pass through."""
        relay.relay(PURCHASE, client_ip="203.0.113.9", user_agent="Mozilla/5.0")

        user_data = sent_payload(mock_http)["data"][0]["user_data"]
        assert user_data == {
            "em": [sha256("jane.doe@example.com")],
            "ph": [sha256("15551234567")],
            "fn": sha256("jane"),
            "ln": sha256("doe"),
            "ct": sha256("austin"),
            "st": sha256("tx"),
            "zp": sha256("78701"),
            "country": sha256("us"),
            "fbc": "fb.1.1700000000.abc",
            "fbp": "fb.1.1700000000.123",
            "client_ip_address": "203.0.113.9",
            "client_user_agent": "Mozilla/5.0",
        }

    def test_raw_pii_never_sent_or_logged(self, relay, mock_http, caplog) -> None:
        """Test no raw PII value appears in the outbound body or the logs."""
        caplog.set_level(logging.DEBUG)

        relay.relay(PURCHASE)

        body = json.dumps(sent_payload(mock_http))
        for field in ("email", "phone", "firstName", "lastName", "city"):
            raw = PURCHASE[field].strip()
            assert raw not in body
            assert raw not in caplog.text

    def test_custom_data(self, relay, mock_http) -> None:
        """Test value rounding, default currency and dropped keys."""
        relay.relay(PURCHASE)

        custom_data = sent_payload(mock_http)["data"][0]["custom_data"]
        assert custom_data == {
            "value": 50.0,
            "currency": "USD",
            "content_ids": ["sku-1"],
            "num_items": 1,
            "order_id": "order-9",
        }

    def test_test_event_code(self, mock_http, idempotency) -> None:
        """Test the test event code is sent in test mode."""
        config = RelayConfig(
            pixel_id="123456789012345",
            access_token="A" * 60,
            test_event_code="TEST123",
        )

        ConversionRelay(config, idempotency=idempotency).relay(PURCHASE)

        assert sent_payload(mock_http)["test_event_code"] == "TEST123"

    def test_event_source_url_falls_back_to_request_url(self, relay, mock_http) -> None:
        """Test the request URL is used when the body has no eventSourceUrl."""
        body = {"eventName": "Lead", "eventId": "evt-1"}

        relay.relay(body, request_url="https://shop.example/conversion-relay")

        event = sent_payload(mock_http)["data"][0]
        assert event["event_source_url"] == "https://shop.example/conversion-relay"


class TestOutboundResponses:
    """Tests for handling the platform's answer."""

    def test_success_returns_trace_id(self, relay, mock_http) -> None:
        """Test a 2xx answer."""
        result = relay.relay(PURCHASE)

        assert result.to_dict() == {"success": True, "eventId": "evt-123", "traceId": "trace-1"}

    def test_rejection_passes_status_and_body_through(self, relay, mock_http, response_factory) -> None:
        """Test a non-2xx answer becomes a failure with the platform's status and body."""
        body = {"error": {"message": "Invalid parameter", "code": 100}}
        mock_http.post.return_value = response_factory(400, body)

        result = relay.relay(PURCHASE)

        assert result.success is False
        assert result.status_code == 400
        assert json.loads(result.error) == body
        assert mock_http.post.call_count == 1

    def test_non_json_rejection(self, relay, mock_http, response_factory) -> None:
        """Test a non-JSON error body is passed through as text."""
        response = response_factory(502)
        response.json.side_effect = ValueError("not json")
        response.text = "Bad Gateway"
        mock_http.post.return_value = response

        result = relay.relay(PURCHASE)

        assert result.status_code == 502
        assert result.error == "Bad Gateway"

    def test_transport_error_retried_once(self, relay, mock_http, response_factory) -> None:
        """Test one retry after a connection failure."""
        mock_http.post.side_effect = [httpx.ConnectError("refused"), response_factory()]

        result = relay.relay(PURCHASE)

        assert result.success is True
        assert mock_http.post.call_count == 2

    def test_transport_error_twice_fails(self, relay, mock_http, caplog) -> None:
        """Test a second transport failure is returned as a 500 result."""
        mock_http.post.side_effect = httpx.ReadTimeout("timed out")

        result = relay.relay(PURCHASE)

        assert mock_http.post.call_count == 2
        assert result.success is False
        assert result.status_code == 500
        assert not relay.idempotency.is_processed("evt-123")
        assert "Unexpected error relaying conversion" in caplog.text


class TestHealth:
    """Tests for the health check."""

    def test_configured(self, relay) -> None:
        """Test the pixel id is masked to its last four digits."""
        assert relay.health() == {
            "status": "ok",
            "configured": True,
            "pixelId": "***2345",
            "testMode": False,
        }

    def test_not_configured(self) -> None:
        """Test an empty configuration."""
        health = ConversionRelay(RelayConfig()).health()

        assert health["configured"] is False
        assert health["pixelId"] == "not set"

    def test_token_never_exposed(self, relay) -> None:
        """Test the access token is not part of the health body."""
        assert relay.config.access_token not in json.dumps(relay.health())
