"""
PixelBridge Server - FastAPI application.

Configuration is read once at startup and passed into the relay and the
tracking store; handlers never read the environment.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from pixelbridge.relay import ConversionRelay, RelayConfig, get_client_ip
from pixelbridge.tracking.behavior import BehaviorTracker
from pixelbridge.tracking.config import TrackingConfig
from pixelbridge.tracking.events import CanonicalEvent, now_ms
from pixelbridge.tracking.identity import random_base36
from pixelbridge.tracking.storage import InMemoryStore, KeyValueStore

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger from PIXELBRIDGE_LOG_LEVEL (default INFO)."""
    level_name = (level or os.getenv("PIXELBRIDGE_LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)


async def _read_json(request: Request) -> dict[str, Any]:
    """Request body as a JSON object; anything else reads as {}."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def create_app(
    tracking_config: TrackingConfig | None = None,
    relay_config: RelayConfig | None = None,
    relay: ConversionRelay | None = None,
    store: KeyValueStore | None = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        tracking_config: Tracking configuration (defaults to the environment)
        relay_config: Relay configuration (defaults to the environment)
        relay: Conversion relay (defaults to one built from relay_config)
        store: Behavior store shared by all visitors, namespaced per device id

    Returns:
        FastAPI application
    """
    tracking_config = tracking_config or TrackingConfig.from_env()
    if relay is None:
        relay = ConversionRelay(relay_config or RelayConfig.from_env())
    store = store if store is not None else InMemoryStore()

    app = FastAPI(title="PixelBridge Relay")
    app.state.tracking_config = tracking_config
    app.state.relay = relay
    app.state.store = store

    # =========================================================================
    # Conversion relay
    # =========================================================================

    @app.post("/conversion-relay")
    async def conversion_relay(request: Request) -> JSONResponse:
        """Relay one conversion; the response status mirrors the outcome."""
        body = await _read_json(request)
        result = await run_in_threadpool(
            relay.relay,
            body,
            client_ip=get_client_ip(request.headers),
            user_agent=request.headers.get("user-agent"),
            request_url=str(request.url),
        )
        return JSONResponse(result.to_dict(), status_code=result.status_code)

    @app.get("/conversion-relay")
    def conversion_relay_health() -> dict[str, Any]:
        """Relay health; never exposes the full pixel id or the token."""
        return relay.health()

    # =========================================================================
    # Tracking events
    # =========================================================================

    @app.post("/tracking/events")
    async def tracking_events(request: Request) -> JSONResponse:
        """Store one tracked event and return visitor insights."""
        body = await _read_json(request)
        try:
            event = CanonicalEvent.parse(body.get("event") or "")
        except ValueError:
            return JSONResponse(
                {"success": False, "error": f"Unknown event: {body.get('event')!r}"},
                status_code=400,
            )

        try:
            response = await run_in_threadpool(
                _store_event,
                store,
                event,
                body,
                get_client_ip(request.headers) or "unknown",
                request.headers.get("user-agent") or "",
            )
        except Exception:
            logger.exception("Failed to process tracking event")
            return JSONResponse(
                {"success": False, "error": "Failed to process tracking event"},
                status_code=500,
            )
        return JSONResponse(response)

    # =========================================================================
    # Health
    # =========================================================================

    @app.get("/healthz")
    def health() -> dict[str, Any]:
        """Basic health check for load balancer, with the enabled destinations."""
        return {
            "status": "ok",
            "destinations": [p.value for p in tracking_config.enabled_platforms()],
        }

    return app


def _store_event(
    store: KeyValueStore,
    event: CanonicalEvent,
    body: dict[str, Any],
    client_ip: str,
    user_agent: str,
) -> dict[str, Any]:
    """Update the visitor's behavior record and build the response body."""
    session = body.get("session") or {}
    data = body.get("data") or {}
    timestamp = body.get("timestamp") or now_ms()
    device_id = session.get("deviceId")
    session_id = session.get("sessionId") or ""

    logger.info(
        f"Tracking event {event.value} device={device_id or 'unknown'} "
        f"session={session_id or 'unknown'} received_at={now_ms()}"
    )
    logger.debug(f"Tracking event {event.value} client ip={client_ip} user agent={user_agent!r}")

    is_returning = False
    predicted_value = 0.0
    if device_id:
        tracker = BehaviorTracker(store.namespace(device_id), device_id=device_id)
        record = tracker.get_behavior()
        if record is None or (session_id and record.session_id != session_id):
            tracker.record_session(session_id, now=timestamp)
        record = tracker.track_event(event, data, now=timestamp)
        is_returning = record.sessions > 1
        predicted_value = tracker.predict_clv()

    return {
        "success": True,
        "eventId": f"evt_{timestamp}_{random_base36()}",
        "insights": {
            "deviceType": (session.get("device") or {}).get("type") or "unknown",
            "hasUTM": bool((session.get("utmParams") or {}).get("source")),
            "isReturningVisitor": is_returning,
            "predictedValue": predicted_value,
        },
    }


# =============================================================================
# Entry Point
# =============================================================================


def main():
    """Run the server with uvicorn."""
    import uvicorn

    configure_logging()
    uvicorn.run(
        create_app(),
        host=os.getenv("PIXELBRIDGE_HOST", "127.0.0.1"),
        port=int(os.getenv("PIXELBRIDGE_PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
