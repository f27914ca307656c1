"""
PixelBridge Server - HTTP surface for the conversion relay and event sink.

Endpoints:
- POST /conversion-relay: forward one conversion to the Conversions API
- GET  /conversion-relay: relay health (configured, masked pixel id, test mode)
- POST /tracking/events: server-side storage for the dispatcher's event sink
- GET  /healthz: liveness check

Usage:
    # Via CLI
    pixelbridge-server

    # Via Python
    from pixelbridge_server.app import create_app
    app = create_app()
"""

__version__ = "0.1.0"
