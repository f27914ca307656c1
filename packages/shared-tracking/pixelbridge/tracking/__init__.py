"""
PixelBridge Tracking - visitor identity, touchpoints and behavior scoring.

Provides:
- Canonical event taxonomy shared by every destination mapping
- Device identity and per-visit session records
- Touchpoint ledger with first-touch, last-touch, linear and time-decay
  attribution
- Behavior scorer: lifecycle stage, conversion probability, churn risk,
  segments and retargeting audiences
- Campaign performance metrics

Usage:
    from pixelbridge.tracking import (
        AttributionModel,
        BehaviorTracker,
        CanonicalEvent,
        InMemoryStore,
        TouchpointLedger,
    )

    store = InMemoryStore().namespace(device_id)
    ledger = TouchpointLedger(store)
    ledger.record_arrival_params({"utm_source": "google", "utm_medium": "cpc"})

    tracker = BehaviorTracker(store, device_id=device_id)
    tracker.track_event(CanonicalEvent.ADD_TO_CART)
"""

from pixelbridge.tracking.behavior import (
    BehaviorRecord,
    BehaviorTracker,
    CustomerSegment,
    LifecycleStage,
    RetargetingAudience,
    SegmentName,
    SegmentValue,
    apply_event,
    classify_segment,
    estimate_clv,
    evaluate_lifecycle,
    retargeting_audiences,
)
from pixelbridge.tracking.campaigns import (
    AttributionModel,
    AttributionResult,
    CampaignParams,
    Touchpoint,
    TouchpointLedger,
    get_utm_params,
)
from pixelbridge.tracking.config import Platform, PlatformConfig, TrackingConfig
from pixelbridge.tracking.events import (
    PURCHASE_CLASS_EVENTS,
    CanonicalEvent,
    TrackedEvent,
)
from pixelbridge.tracking.identity import (
    DeviceInfo,
    DeviceType,
    IdentityStore,
    SessionRecord,
    detect_device_type,
)
from pixelbridge.tracking.performance import (
    calculate_conversion_rate,
    calculate_cpa,
    calculate_ctr,
    calculate_roas,
    summarize_campaigns,
)
from pixelbridge.tracking.storage import InMemoryStore, KeyValueStore, NamespacedStore

__all__ = [
    # Events
    "CanonicalEvent",
    "TrackedEvent",
    "PURCHASE_CLASS_EVENTS",
    # Storage
    "KeyValueStore",
    "InMemoryStore",
    "NamespacedStore",
    # Config
    "Platform",
    "PlatformConfig",
    "TrackingConfig",
    # Identity
    "IdentityStore",
    "SessionRecord",
    "DeviceInfo",
    "DeviceType",
    "detect_device_type",
    # Campaigns
    "AttributionModel",
    "AttributionResult",
    "CampaignParams",
    "Touchpoint",
    "TouchpointLedger",
    "get_utm_params",
    # Behavior
    "BehaviorRecord",
    "BehaviorTracker",
    "CustomerSegment",
    "LifecycleStage",
    "RetargetingAudience",
    "SegmentName",
    "SegmentValue",
    "apply_event",
    "classify_segment",
    "estimate_clv",
    "evaluate_lifecycle",
    "retargeting_audiences",
    # Performance
    "calculate_roas",
    "calculate_cpa",
    "calculate_ctr",
    "calculate_conversion_rate",
    "summarize_campaigns",
]
