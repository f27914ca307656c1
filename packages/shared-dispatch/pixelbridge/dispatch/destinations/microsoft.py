"""Microsoft Advertising (Bing UET) destination."""

from __future__ import annotations

from pixelbridge.dispatch.base import TrackCallClient
from pixelbridge.dispatch.registry import get_registry
from pixelbridge.tracking.config import Platform
from pixelbridge.tracking.events import CanonicalEvent


class MicrosoftClient(TrackCallClient):
    """Client for the UET tag: uetq.push('event', event, data).

    UET accepts the GA4 recommended event names.
    """

    platform = Platform.MICROSOFT
    function = "uetq.push"
    leading_args = ("event",)
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


# Auto-register destination
get_registry().register(Platform.MICROSOFT, MicrosoftClient)
