"""
Server-side conversion relay.

relay(request) runs, in order:
1. Check the pixel id and access token (500 INVALID_CONFIG)
2. Check eventName and eventId (400 INVALID_PAYLOAD)
3. Claim a Purchase's event id; a repeat or in-flight one is a duplicate
4. Occasionally sweep expired idempotency entries
5. Hash PII and POST one event to the Conversions API
6. Record a delivered Purchase, or release its claim on failure

Every outcome is returned as a RelayResult; nothing is raised to the
checkout flow. Raw PII is never logged.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

import httpx
import pydantic

from pixelbridge.relay.config import RelayConfig
from pixelbridge.relay.exceptions import (
    ConfigurationError,
    DestinationRejected,
    RelayError,
    ValidationError,
)
from pixelbridge.relay.hashing import build_user_data
from pixelbridge.relay.idempotency import IdempotencyStore
from pixelbridge.relay.schema import ConversionRequest, RelayResult
from pixelbridge.tracking.events import CanonicalEvent, now_ms

logger = logging.getLogger(__name__)

ACTION_SOURCE = "website"
MAX_ATTEMPTS = 2  # One retry, on transport errors only


class ConversionRelay:
    """Forwards conversions to the Facebook Conversions API.

    The event id must be the one the browser pixel sent as eventID so the
    platform counts the conversion once.

    Example:
        relay = ConversionRelay(RelayConfig.from_env())
        result = relay.relay(
            {"eventName": "Purchase", "eventId": event_id, "email": email, "value": 49.99},
            client_ip=ip,
            user_agent=ua,
        )
        if not result.success:
            print(result.status_code, result.error)
    """

    def __init__(
        self,
        config: RelayConfig,
        idempotency: IdempotencyStore | None = None,
    ):
        """
        Initialize relay.

        Args:
            config: Relay configuration
            idempotency: Store of forwarded Purchase event ids
        """
        self.config = config
        self.idempotency = idempotency or IdempotencyStore()
        self.timeout = httpx.Timeout(config.timeout, connect=min(config.timeout, 5.0))

    def relay(
        self,
        request: ConversionRequest | Mapping[str, Any],
        client_ip: str | None = None,
        user_agent: str | None = None,
        request_url: str | None = None,
    ) -> RelayResult:
        """
        Relay one conversion.

        Args:
            request: Conversion request, or its JSON body
            client_ip: Client IP address of the original browser request
            user_agent: Client user agent
            request_url: URL used as event_source_url when the request has none

        Returns:
            RelayResult with the HTTP status the storefront should answer with
        """
        if isinstance(request, ConversionRequest):
            event_id = request.event_id
        else:
            event_id = request.get("eventId") or request.get("event_id")
        try:
            if not self.config.is_configured:
                logger.error("Conversion relay is not configured: invalid or missing pixel id or access token")
                raise ConfigurationError("Facebook pixel id or access token not configured")
            if not isinstance(request, ConversionRequest):
                request = self.parse_request(request)
            return self._relay(request, client_ip, user_agent, request_url)
        except RelayError as e:
            return RelayResult(
                success=False,
                status_code=e.status_code,
                event_id=event_id,
                error=e.error_code,
            )
        except Exception as e:
            logger.exception("Unexpected error relaying conversion")
            return RelayResult(
                success=False,
                status_code=500,
                event_id=event_id,
                error=str(e) or type(e).__name__,
            )

    @staticmethod
    def parse_request(body: Mapping[str, Any]) -> ConversionRequest:
        """Parse a JSON body, reporting malformed fields as INVALID_PAYLOAD."""
        try:
            return ConversionRequest.model_validate(body)
        except pydantic.ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise ValidationError(f"Malformed fields: {fields}") from e

    def _relay(
        self,
        request: ConversionRequest,
        client_ip: str | None,
        user_agent: str | None,
        request_url: str | None,
    ) -> RelayResult:
        if not request.event_name:
            raise ValidationError("Missing required field: eventName")
        if not request.event_id:
            raise ValidationError("Missing required field: eventId")

        is_purchase = request.event_name == CanonicalEvent.PURCHASE.value
        if is_purchase and not self.idempotency.reserve(request.event_id):
            logger.info(f"Duplicate Purchase suppressed: {request.event_id}")
            return RelayResult(success=True, event_id=request.event_id, duplicate=True)

        try:
            self.idempotency.maybe_sweep()
            payload = self.build_payload(request, client_ip, user_agent, request_url)
            response_data = self._post(payload)
        except Exception:
            if is_purchase:
                self.idempotency.release(request.event_id)
            raise

        if is_purchase:
            self.idempotency.mark_processed(request.event_id)

        trace_id = response_data.get("fbtrace_id")
        logger.info(f"Relayed {request.event_name} ({request.event_id}), trace id {trace_id}")
        return RelayResult(success=True, event_id=request.event_id, trace_id=trace_id)

    def build_payload(
        self,
        request: ConversionRequest,
        client_ip: str | None = None,
        user_agent: str | None = None,
        request_url: str | None = None,
    ) -> dict[str, Any]:
        """
        Build the Conversions API request body for one event.

        Args:
            request: Validated conversion request
            client_ip: Client IP address
            user_agent: Client user agent
            request_url: Fallback event_source_url

        Returns:
            {data: [event], test_event_code?}
        """
        event: dict[str, Any] = {
            "event_name": request.event_name,
            "event_time": now_ms() // 1000,
            "event_id": request.event_id,
            "event_source_url": request.event_source_url or request_url,
            "action_source": ACTION_SOURCE,
            "user_data": build_user_data(request, client_ip, user_agent),
        }
        if event["event_source_url"] is None:
            del event["event_source_url"]

        custom_data = request.build_custom_data()
        if custom_data:
            event["custom_data"] = custom_data

        payload: dict[str, Any] = {"data": [event]}
        if self.config.test_event_code:
            payload["test_event_code"] = self.config.test_event_code
        return payload

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST the payload, retrying once on a transport error.

        Raises:
            DestinationRejected: On a non-2xx answer
            httpx.TransportError: If both attempts fail to get an answer
        """
        params = {"access_token": self.config.access_token}
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(self.config.events_url, params=params, json=payload)
                break
            except httpx.TransportError as e:
                if attempt == MAX_ATTEMPTS:
                    raise
                logger.warning(f"Conversions API request failed ({e}), retrying")

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            error = json.dumps(body) if body is not None else response.text
            logger.error(f"Conversions API rejected event: HTTP {response.status_code} {error}")
            raise DestinationRejected(response.status_code, error)

        return body if isinstance(body, dict) else {}

    def health(self) -> dict[str, Any]:
        """Health check body; never exposes the full pixel id or the token."""
        return {
            "status": "ok",
            "configured": self.config.is_configured,
            "pixelId": self.config.masked_pixel_id,
            "testMode": self.config.test_mode,
        }
