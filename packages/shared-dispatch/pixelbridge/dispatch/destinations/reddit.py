"""Reddit Pixel destination."""

from __future__ import annotations

from pixelbridge.dispatch.base import TrackCallClient
from pixelbridge.dispatch.registry import get_registry
from pixelbridge.tracking.config import Platform
from pixelbridge.tracking.events import CanonicalEvent


class RedditClient(TrackCallClient):
    """Client for the Reddit Pixel: rdt('track', event, data)."""

    platform = Platform.REDDIT
    function = "rdt"
    event_map = {
        CanonicalEvent.PAGE_VIEW: "PageVisit",
        CanonicalEvent.VIEW_CONTENT: "ViewContent",
        CanonicalEvent.SEARCH: "Search",
        CanonicalEvent.ADD_TO_CART: "AddToCart",
        CanonicalEvent.ADD_TO_WISHLIST: "AddToWishlist",
        CanonicalEvent.INITIATE_CHECKOUT: "Purchase",
        CanonicalEvent.ADD_PAYMENT_INFO: "AddPaymentInfo",
        CanonicalEvent.PURCHASE: "Purchase",
        CanonicalEvent.LEAD: "Lead",
        CanonicalEvent.COMPLETE_REGISTRATION: "SignUp",
        CanonicalEvent.SUBSCRIBE: "SignUp",
        CanonicalEvent.START_TRIAL: "Custom",
        CanonicalEvent.SUBMIT_APPLICATION: "Lead",
        CanonicalEvent.CONTACT: "Custom",
    }


# Auto-register destination
get_registry().register(Platform.REDDIT, RedditClient)
