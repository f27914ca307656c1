"""Google Analytics 4 / Google Ads destination."""

from __future__ import annotations

from typing import Any

from pixelbridge.dispatch.base import DestinationClient, PixelCommand
from pixelbridge.dispatch.registry import get_registry
from pixelbridge.tracking.config import Platform
from pixelbridge.tracking.events import CanonicalEvent


class GoogleClient(DestinationClient):
    """Client for gtag.js.

    Every event is sent as a GA4 recommended event. When a Google Ads
    conversion id and label are configured, a Purchase additionally fires
    the Ads conversion.

    Optional options:
        - ads_conversion_id: Google Ads conversion id (AW-...)
        - ads_conversion_label: Conversion label
    """

    platform = Platform.GOOGLE
    event_map = {
        CanonicalEvent.PAGE_VIEW: "page_view",
        CanonicalEvent.VIEW_CONTENT: "view_item",
        CanonicalEvent.SEARCH: "search",
        CanonicalEvent.ADD_TO_CART: "add_to_cart",
        CanonicalEvent.ADD_TO_WISHLIST: "add_to_wishlist",
        CanonicalEvent.INITIATE_CHECKOUT: "begin_checkout",
        CanonicalEvent.ADD_PAYMENT_INFO: "add_payment_info",
        CanonicalEvent.PURCHASE: "purchase",
        CanonicalEvent.LEAD: "generate_lead",
        CanonicalEvent.COMPLETE_REGISTRATION: "sign_up",
        CanonicalEvent.SUBSCRIBE: "subscribe",
        CanonicalEvent.START_TRIAL: "start_trial",
        CanonicalEvent.SUBMIT_APPLICATION: "submit_application",
        CanonicalEvent.CONTACT: "contact",
    }

    def build_commands(
        self,
        event_name: str,
        data: dict[str, Any],
        event: CanonicalEvent,
    ) -> list[PixelCommand]:
        commands = [PixelCommand("gtag", ("event", event_name, data))]

        conversion_id = self.config.options.get("ads_conversion_id")
        label = self.config.options.get("ads_conversion_label")
        if event == CanonicalEvent.PURCHASE and conversion_id and label:
            conversion = {
                "send_to": f"{conversion_id}/{label}",
                "value": data.get("value"),
                "currency": data.get("currency", "USD"),
                "transaction_id": data.get("order_id", ""),
            }
            commands.append(PixelCommand("gtag", ("event", "conversion", conversion)))

        return commands


# Auto-register destination
get_registry().register(Platform.GOOGLE, GoogleClient)
