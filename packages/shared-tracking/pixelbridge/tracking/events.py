"""
Canonical event taxonomy.

Every storefront interaction is expressed as one of these canonical events
before it is translated into a destination platform's own vocabulary. The
taxonomy is the single source of truth: destination mapping tables, the
behavior scorer and the conversion relay are all keyed off it.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class CanonicalEvent(str, Enum):
    """Canonical tracking events."""

    PAGE_VIEW = "PageView"
    VIEW_CONTENT = "ViewContent"
    SEARCH = "Search"
    ADD_TO_CART = "AddToCart"
    ADD_TO_WISHLIST = "AddToWishlist"
    INITIATE_CHECKOUT = "InitiateCheckout"
    ADD_PAYMENT_INFO = "AddPaymentInfo"
    PURCHASE = "Purchase"
    LEAD = "Lead"
    COMPLETE_REGISTRATION = "CompleteRegistration"
    SUBSCRIBE = "Subscribe"
    START_TRIAL = "StartTrial"
    SUBMIT_APPLICATION = "SubmitApplication"
    CONTACT = "Contact"

    @classmethod
    def parse(cls, value: str | CanonicalEvent) -> CanonicalEvent:
        """Resolve a canonical event from its name.

        Args:
            value: Event name as sent by the storefront (e.g. "AddToCart").

        Returns:
            The matching CanonicalEvent.

        Raises:
            ValueError: If the name is not part of the taxonomy.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as e:
            raise ValueError(f"Unknown canonical event: {value!r}") from e


MS_PER_DAY = 24 * 60 * 60 * 1000


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


# Events that represent a completed conversion and go through the relay
PURCHASE_CLASS_EVENTS = frozenset({CanonicalEvent.PURCHASE})


@dataclass
class TrackedEvent:
    """One canonical event as recorded in a session's event list."""

    event: CanonicalEvent
    timestamp: int  # epoch milliseconds
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "event": self.event.value,
            "timestamp": self.timestamp,
            "data": dict(self.data),
        }
