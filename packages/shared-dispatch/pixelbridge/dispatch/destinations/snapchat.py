"""Snapchat Pixel destination."""

from __future__ import annotations

from pixelbridge.dispatch.base import TrackCallClient
from pixelbridge.dispatch.registry import get_registry
from pixelbridge.tracking.config import Platform
from pixelbridge.tracking.events import CanonicalEvent


class SnapchatClient(TrackCallClient):
    """Client for the Snap Pixel: snaptr('track', event, data)."""

    platform = Platform.SNAPCHAT
    function = "snaptr"
    event_map = {
        CanonicalEvent.PAGE_VIEW: "PAGE_VIEW",
        CanonicalEvent.VIEW_CONTENT: "VIEW_CONTENT",
        CanonicalEvent.SEARCH: "SEARCH",
        CanonicalEvent.ADD_TO_CART: "ADD_CART",
        CanonicalEvent.ADD_TO_WISHLIST: "ADD_TO_WISHLIST",
        CanonicalEvent.INITIATE_CHECKOUT: "START_CHECKOUT",
        CanonicalEvent.ADD_PAYMENT_INFO: "ADD_BILLING",
        CanonicalEvent.PURCHASE: "PURCHASE",
        CanonicalEvent.LEAD: "SIGN_UP",
        CanonicalEvent.COMPLETE_REGISTRATION: "SIGN_UP",
        CanonicalEvent.SUBSCRIBE: "SUBSCRIBE",
        CanonicalEvent.START_TRIAL: "START_TRIAL",
        CanonicalEvent.SUBMIT_APPLICATION: "SUBMIT_APPLICATION",
        CanonicalEvent.CONTACT: "CONTACT",
    }


# Auto-register destination
get_registry().register(Platform.SNAPCHAT, SnapchatClient)
