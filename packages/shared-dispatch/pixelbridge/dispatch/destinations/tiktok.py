"""TikTok Pixel destination."""

from __future__ import annotations

from pixelbridge.dispatch.base import TrackCallClient
from pixelbridge.dispatch.registry import get_registry
from pixelbridge.tracking.config import Platform
from pixelbridge.tracking.events import CanonicalEvent


class TikTokClient(TrackCallClient):
    """Client for the TikTok Pixel: ttq.track(event, data)."""

    platform = Platform.TIKTOK
    function = "ttq.track"
    leading_args = ()
    event_map = {
        CanonicalEvent.PAGE_VIEW: "ViewContent",
        CanonicalEvent.VIEW_CONTENT: "ViewContent",
        CanonicalEvent.SEARCH: "Search",
        CanonicalEvent.ADD_TO_CART: "AddToCart",
        CanonicalEvent.ADD_TO_WISHLIST: "AddToWishlist",
        CanonicalEvent.INITIATE_CHECKOUT: "InitiateCheckout",
        CanonicalEvent.ADD_PAYMENT_INFO: "AddPaymentInfo",
        CanonicalEvent.PURCHASE: "CompletePayment",
        CanonicalEvent.LEAD: "SubmitForm",
        CanonicalEvent.COMPLETE_REGISTRATION: "CompleteRegistration",
        CanonicalEvent.SUBSCRIBE: "Subscribe",
        CanonicalEvent.START_TRIAL: "StartTrial",
        CanonicalEvent.SUBMIT_APPLICATION: "SubmitForm",
        CanonicalEvent.CONTACT: "Contact",
    }


# Auto-register destination
get_registry().register(Platform.TIKTOK, TikTokClient)
