"""
Customer behavior scoring, segmentation and retargeting audiences.

One BehaviorRecord is kept per visitor identity. Every canonical event
updates its counters, the lifecycle stage and two scores:
- conversion_probability (0-100): likelihood of a (repeat) purchase
- churn_risk (0-100): derived from days since the last purchase

Segments and retargeting audiences are read-only projections over the
current record.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any

from pixelbridge.tracking.events import MS_PER_DAY, CanonicalEvent, now_ms
from pixelbridge.tracking.storage import KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "customer_behavior"

INITIAL_CONVERSION_PROBABILITY = 20
PURCHASE_CONVERSION_PROBABILITY = 80

# Additive conversion probability deltas per event
SCORE_DELTAS: dict[CanonicalEvent, int] = {
    CanonicalEvent.VIEW_CONTENT: 5,  # Only for a previously unseen product
    CanonicalEvent.ADD_TO_CART: 15,
    CanonicalEvent.ADD_TO_WISHLIST: 10,
    CanonicalEvent.INITIATE_CHECKOUT: 25,
    CanonicalEvent.COMPLETE_REGISTRATION: 20,
}

LEAD_PAGE_VIEWS = 5  # visitor becomes a lead above this many page views
LOYAL_PURCHASES = 3
CHURN_WARNING_DAYS = 60
CHURN_DAYS = 90


class LifecycleStage(str, Enum):
    """Coarse customer-maturity classification."""

    VISITOR = "visitor"
    LEAD = "lead"
    CUSTOMER = "customer"
    LOYAL_CUSTOMER = "loyal_customer"
    CHURNED = "churned"


class SegmentName(str, Enum):
    """Customer segments."""

    VISITORS = "visitors"
    BROWSERS = "browsers"
    ENGAGED = "engaged"
    CART_ABANDONERS = "cart_abandoners"
    FIRST_TIME = "first_time"
    RETURNING = "returning"
    LOYAL = "loyal"
    AT_RISK = "at_risk"
    HIGH_VALUE = "high_value"


class SegmentValue(str, Enum):
    """Marketing value of a segment."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


SEGMENT_DISPLAY_NAMES: dict[SegmentName, str] = {
    SegmentName.VISITORS: "New Visitors",
    SegmentName.BROWSERS: "Active Browsers",
    SegmentName.ENGAGED: "Engaged Shoppers",
    SegmentName.CART_ABANDONERS: "Cart Abandoners",
    SegmentName.FIRST_TIME: "First-Time Customers",
    SegmentName.RETURNING: "Returning Customers",
    SegmentName.LOYAL: "Loyal Customers",
    SegmentName.AT_RISK: "At-Risk Customers",
    SegmentName.HIGH_VALUE: "High-Value Customers",
}


@dataclass
class BehaviorRecord:
    """Per-identity behavior state."""

    session_id: str
    device_id: str
    first_visit: int
    last_visit: int
    user_id: str | None = None

    # Engagement
    sessions: int = 1
    total_page_views: int = 0
    avg_session_duration: float = 0.0

    # Product interactions
    products_viewed: list[str] = field(default_factory=list)
    categories_viewed: list[str] = field(default_factory=list)
    add_to_cart_count: int = 0
    wishlist_count: int = 0

    # Purchases
    purchase_count: int = 0
    total_revenue: float = 0.0
    avg_order_value: float = 0.0
    last_purchase_date: int | None = None

    # Content engagement
    blog_posts_read: list[str] = field(default_factory=list)
    search_queries: list[str] = field(default_factory=list)

    stage: LifecycleStage = LifecycleStage.VISITOR
    churn_risk: float = 0.0
    conversion_probability: float = INITIAL_CONVERSION_PROBABILITY

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BehaviorRecord:
        """Create a BehaviorRecord from its stored dictionary form."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        if "stage" in values:
            values["stage"] = LifecycleStage(values["stage"])
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        data = asdict(self)
        data["stage"] = self.stage.value
        return data

    def days_since(self, timestamp: int, now: int) -> float:
        return (now - timestamp) / MS_PER_DAY


@dataclass
class CustomerSegment:
    """Segment derived from one behavior record."""

    id: str
    name: str
    segment: SegmentName
    value: SegmentValue
    criteria: dict[str, Any] = field(default_factory=dict)
    user_count: int = 1
    last_updated: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "segment": self.segment.value,
            "value": self.value.value,
            "criteria": dict(self.criteria),
            "userCount": self.user_count,
            "lastUpdated": self.last_updated,
        }


@dataclass
class RetargetingAudience:
    """Retargeting audience the identity currently belongs to."""

    id: str
    name: str
    criteria: dict[str, Any] = field(default_factory=dict)
    platform: str = "all"
    size: int = 1
    created_at: int = 0
    status: str = "active"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "platform": self.platform,
            "criteria": dict(self.criteria),
            "size": self.size,
            "createdAt": self.created_at,
            "status": self.status,
        }


def _clamp(score: float) -> float:
    return max(0.0, min(100.0, score))


def _order_value(value: Any) -> float:
    """Purchase value as a float; missing, unparsable or non-finite values count as 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def apply_event(
    record: BehaviorRecord,
    event: CanonicalEvent,
    data: dict[str, Any] | None = None,
    now: int | None = None,
) -> BehaviorRecord:
    """
    Update a behavior record in place for one canonical event.

    Args:
        record: Record to mutate
        event: Canonical event
        data: Event data (product_id, category, value, search_term, user_id)
        now: Event time in epoch milliseconds (defaults to now)

    Returns:
        The same record, for chaining
    """
    now = now if now is not None else now_ms()
    data = data or {}
    record.last_visit = now

    if event == CanonicalEvent.PAGE_VIEW:
        record.total_page_views += 1

    elif event == CanonicalEvent.VIEW_CONTENT:
        product_id = data.get("product_id")
        if product_id and product_id not in record.products_viewed:
            record.products_viewed.append(product_id)
            record.conversion_probability = _clamp(
                record.conversion_probability + SCORE_DELTAS[event]
            )
        category = data.get("category")
        if category and category not in record.categories_viewed:
            record.categories_viewed.append(category)

    elif event == CanonicalEvent.ADD_TO_CART:
        record.add_to_cart_count += 1
        record.conversion_probability = _clamp(record.conversion_probability + SCORE_DELTAS[event])

    elif event == CanonicalEvent.ADD_TO_WISHLIST:
        record.wishlist_count += 1
        record.conversion_probability = _clamp(record.conversion_probability + SCORE_DELTAS[event])

    elif event == CanonicalEvent.INITIATE_CHECKOUT:
        record.conversion_probability = _clamp(record.conversion_probability + SCORE_DELTAS[event])

    elif event == CanonicalEvent.PURCHASE:
        record.purchase_count += 1
        record.total_revenue += _order_value(data.get("value"))
        record.avg_order_value = record.total_revenue / record.purchase_count
        record.last_purchase_date = now
        record.stage = (
            LifecycleStage.LOYAL_CUSTOMER
            if record.purchase_count >= LOYAL_PURCHASES
            else LifecycleStage.CUSTOMER
        )
        record.churn_risk = 0.0
        record.conversion_probability = PURCHASE_CONVERSION_PROBABILITY

    elif event == CanonicalEvent.SEARCH:
        term = data.get("search_term")
        if term and term not in record.search_queries:
            record.search_queries.append(term)

    elif event == CanonicalEvent.COMPLETE_REGISTRATION:
        if record.stage == LifecycleStage.VISITOR:
            record.stage = LifecycleStage.LEAD
        record.conversion_probability = _clamp(record.conversion_probability + SCORE_DELTAS[event])
        if data.get("user_id"):
            record.user_id = str(data["user_id"])

    return evaluate_lifecycle(record, now)


def evaluate_lifecycle(record: BehaviorRecord, now: int | None = None) -> BehaviorRecord:
    """
    Re-evaluate the lifecycle stage and churn risk without a new event.

    Churn risk against the last purchase:
    - <= 60 days: 0
    - 60-90 days: min(100, (days - 60) * 1.5)
    - > 90 days: min(100, (days - 90) * 2), stage forced to churned
    """
    now = now if now is not None else now_ms()

    if record.stage == LifecycleStage.VISITOR and record.total_page_views > LEAD_PAGE_VIEWS:
        record.stage = LifecycleStage.LEAD

    if record.last_purchase_date is not None:
        days = record.days_since(record.last_purchase_date, now)
        if days > CHURN_DAYS:
            record.churn_risk = _clamp((days - CHURN_DAYS) * 2)
            if record.stage != LifecycleStage.CHURNED:
                logger.info(f"Identity {record.device_id} churned after {days:.0f} days")
            record.stage = LifecycleStage.CHURNED
        elif days > CHURN_WARNING_DAYS:
            record.churn_risk = _clamp((days - CHURN_WARNING_DAYS) * 1.5)
        else:
            record.churn_risk = 0.0

    return record


def classify_segment(record: BehaviorRecord, now: int | None = None) -> CustomerSegment:
    """
    Derive the customer segment.

    Priority order matters: a churned high spender is always at_risk,
    never loyal.
    """
    if record.stage == LifecycleStage.LOYAL_CUSTOMER:
        segment, value = SegmentName.LOYAL, SegmentValue.HIGH
    elif record.stage == LifecycleStage.CUSTOMER:
        segment = SegmentName.FIRST_TIME if record.purchase_count == 1 else SegmentName.RETURNING
        value = SegmentValue.HIGH if record.avg_order_value > 100 else SegmentValue.MEDIUM
    elif record.stage == LifecycleStage.CHURNED:
        segment = SegmentName.AT_RISK
        value = SegmentValue.HIGH if record.total_revenue > 200 else SegmentValue.MEDIUM
    elif record.add_to_cart_count > 0 or record.wishlist_count > 0:
        segment = SegmentName.ENGAGED
        value = SegmentValue.MEDIUM if record.conversion_probability > 50 else SegmentValue.LOW
    elif record.total_page_views > 10:
        segment, value = SegmentName.BROWSERS, SegmentValue.LOW
    else:
        segment, value = SegmentName.VISITORS, SegmentValue.LOW

    return CustomerSegment(
        id=f"seg_{record.device_id}",
        name=SEGMENT_DISPLAY_NAMES[segment],
        segment=segment,
        value=value,
        criteria={
            "minPageViews": record.total_page_views,
            "minPurchases": record.purchase_count,
            "minRevenue": record.total_revenue,
        },
        last_updated=now if now is not None else now_ms(),
    )


def retargeting_audiences(
    record: BehaviorRecord,
    now: int | None = None,
) -> list[RetargetingAudience]:
    """Audiences the record belongs to. Each audience is evaluated independently."""
    now = now if now is not None else now_ms()
    audiences = []

    if (
        record.add_to_cart_count > 0
        and record.purchase_count == 0
        and record.days_since(record.last_visit, now) <= 7
    ):
        audiences.append(
            RetargetingAudience(
                id="cart_abandoners",
                name="Cart Abandoners",
                criteria={"events": ["AddToCart"], "excludeEvents": ["Purchase"], "timeWindow": 7},
                created_at=record.first_visit,
            )
        )

    if record.products_viewed and record.add_to_cart_count == 0:
        audiences.append(
            RetargetingAudience(
                id="product_viewers",
                name="Product Viewers - No Cart",
                criteria={
                    "events": ["ViewContent"],
                    "excludeEvents": ["AddToCart"],
                    "timeWindow": 14,
                },
                created_at=record.first_visit,
            )
        )

    if (
        record.purchase_count > 0
        and record.last_purchase_date is not None
        and record.days_since(record.last_purchase_date, now) <= CHURN_DAYS
    ):
        audiences.append(
            RetargetingAudience(
                id="past_purchasers",
                name="Past Purchasers",
                criteria={"events": ["Purchase"], "timeWindow": 90},
                created_at=record.first_visit,
            )
        )

    if record.sessions >= 3 and record.total_page_views >= 10:
        audiences.append(
            RetargetingAudience(
                id="high_intent",
                name="High Intent Shoppers",
                criteria={"minSessions": 3, "minPageViews": 10, "timeWindow": 30},
                created_at=record.first_visit,
            )
        )

    if record.churn_risk > 50:
        audiences.append(
            RetargetingAudience(
                id="win_back",
                name="Win-Back Customers",
                criteria={"events": ["Purchase"], "daysSinceEvent": 90},
                created_at=record.first_visit,
            )
        )

    return audiences


def estimate_clv(record: BehaviorRecord) -> float:
    """One-year lifetime value: AOV * purchases per session * 12, in cents precision."""
    frequency = record.purchase_count / max(1, record.sessions)
    return round(record.avg_order_value * frequency * 12, 2)


class BehaviorTracker:
    """Behavior record of one identity, persisted in a key-value store.

    Example:
        tracker = BehaviorTracker(store, device_id="device-1", session_id="s-1")
        tracker.track_event(CanonicalEvent.ADD_TO_CART)
        segment = tracker.get_segment()
    """

    def __init__(self, store: KeyValueStore, device_id: str = "", session_id: str = ""):
        self.store = store
        self.device_id = device_id
        self.session_id = session_id

    def get_behavior(self) -> BehaviorRecord | None:
        """Current behavior record, or None for an unseen identity."""
        data = self.store.get(STORAGE_KEY)
        return BehaviorRecord.from_dict(data) if data else None

    def init_behavior(
        self,
        session_id: str | None = None,
        device_id: str | None = None,
        now: int | None = None,
    ) -> BehaviorRecord:
        """Create and persist a fresh record for a new visitor."""
        now = now if now is not None else now_ms()
        record = BehaviorRecord(
            session_id=session_id or self.session_id,
            device_id=device_id or self.device_id,
            first_visit=now,
            last_visit=now,
        )
        self._save(record)
        return record

    def record_session(self, session_id: str, now: int | None = None) -> BehaviorRecord:
        """Register a new visit: creates the record or bumps the session counter."""
        self.session_id = session_id
        record = self.get_behavior()
        if record is None:
            return self.init_behavior(session_id=session_id, now=now)

        record.sessions += 1
        record.session_id = session_id
        record.last_visit = now if now is not None else now_ms()
        self._save(record)
        return record

    def track_event(
        self,
        event: CanonicalEvent | str,
        data: dict[str, Any] | None = None,
        now: int | None = None,
    ) -> BehaviorRecord:
        """Apply an event, creating the record on the identity's first event."""
        event = CanonicalEvent.parse(event)
        record = self.get_behavior() or self.init_behavior(now=now)
        apply_event(record, event, data, now)
        self._save(record)
        return record

    def refresh(self, now: int | None = None) -> BehaviorRecord | None:
        """Re-evaluate lifecycle and churn as of now and persist the result."""
        record = self.get_behavior()
        if record is None:
            return None
        evaluate_lifecycle(record, now)
        self._save(record)
        return record

    def get_segment(self, now: int | None = None) -> CustomerSegment | None:
        record = self.get_behavior()
        return classify_segment(record, now) if record else None

    def get_retargeting_audiences(self, now: int | None = None) -> list[RetargetingAudience]:
        record = self.get_behavior()
        return retargeting_audiences(record, now) if record else []

    def predict_clv(self) -> float:
        """Predicted one-year customer lifetime value (0 for an unseen identity)."""
        record = self.get_behavior()
        return estimate_clv(record) if record else 0.0

    def clear_behavior(self) -> None:
        """Explicit reset: the only way a record is deleted."""
        self.store.delete(STORAGE_KEY)

    def _save(self, record: BehaviorRecord) -> None:
        self.store.set(STORAGE_KEY, record.to_dict())
