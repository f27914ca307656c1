"""Pinterest Tag destination."""

from __future__ import annotations

from pixelbridge.dispatch.base import TrackCallClient
from pixelbridge.dispatch.registry import get_registry
from pixelbridge.tracking.config import Platform
from pixelbridge.tracking.events import CanonicalEvent


class PinterestClient(TrackCallClient):
    """Client for the Pinterest Tag: pintrk('track', event, data).

    Pinterest has a small fixed vocabulary, so several canonical events
    share a name (Purchase and InitiateCheckout both map to checkout).
    """

    platform = Platform.PINTEREST
    function = "pintrk"
    event_map = {
        CanonicalEvent.PAGE_VIEW: "pagevisit",
        CanonicalEvent.VIEW_CONTENT: "viewcategory",
        CanonicalEvent.SEARCH: "search",
        CanonicalEvent.ADD_TO_CART: "addtocart",
        CanonicalEvent.ADD_TO_WISHLIST: "watchvideo",
        CanonicalEvent.INITIATE_CHECKOUT: "checkout",
        CanonicalEvent.ADD_PAYMENT_INFO: "addpaymentinfo",
        CanonicalEvent.PURCHASE: "checkout",
        CanonicalEvent.LEAD: "lead",
        CanonicalEvent.COMPLETE_REGISTRATION: "signup",
        CanonicalEvent.SUBSCRIBE: "signup",
        CanonicalEvent.START_TRIAL: "watchvideo",
        CanonicalEvent.SUBMIT_APPLICATION: "lead",
        CanonicalEvent.CONTACT: "custom",
    }


# Auto-register destination
get_registry().register(Platform.PINTEREST, PinterestClient)
