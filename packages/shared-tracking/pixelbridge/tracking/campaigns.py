"""
Campaign tracking - touchpoint ledger and attribution models.

Every visit that arrives with campaign parameters (utm_source, utm_medium,
utm_campaign, utm_term, utm_content, utm_id) is recorded as a touchpoint.
The ledger keeps:
- First touch: written once, never overwritten
- Last touch: overwritten by every new touchpoint
- The most recent touchpoints (bounded) for multi-touch models

Supported attribution models:
- First-touch: Full credit to the first touchpoint
- Last-touch: Full credit to the last touchpoint
- Linear: Equal credit to all touchpoints
- Time-decay: More credit to recent touchpoints (7-day decay constant)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import parse_qs, urlparse

from pixelbridge.tracking.events import MS_PER_DAY, now_ms
from pixelbridge.tracking.storage import KeyValueStore

logger = logging.getLogger(__name__)

# Fields that mark a visit as campaign-driven
CAMPAIGN_FIELDS = ("source", "medium", "campaign", "term", "content", "id")

# Touchpoint ledger bounds
MAX_TOUCHPOINTS = 10
TIME_DECAY_DAYS = 7

FIRST_TOUCH_KEY = "first_touch_attribution"
LAST_TOUCH_KEY = "last_touch_attribution"
TOUCHPOINTS_KEY = "touchpoints"


class AttributionModel(str, Enum):
    """Attribution model for distributing conversion credit."""

    FIRST_TOUCH = "first_touch"
    LAST_TOUCH = "last_touch"
    LINEAR = "linear"  # Equal credit to all touchpoints
    TIME_DECAY = "time_decay"  # More credit to recent touchpoints


@dataclass
class CampaignParams:
    """Campaign parameters present on arrival (the utm_* query parameters)."""

    source: str | None = None
    medium: str | None = None
    campaign: str | None = None
    term: str | None = None
    content: str | None = None
    id: str | None = None

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any]) -> CampaignParams:
        """Build from a mapping using either utm_* or bare field names.

        Empty strings are treated as absent.
        """
        values = {}
        for name in CAMPAIGN_FIELDS:
            value = params.get(f"utm_{name}", params.get(name))
            values[name] = str(value) if value not in (None, "") else None
        return cls(**values)

    @property
    def has_campaign_data(self) -> bool:
        """True if at least one campaign field is non-empty."""
        return any(getattr(self, name) for name in CAMPAIGN_FIELDS)

    def to_dict(self) -> dict[str, str]:
        """Non-empty fields keyed by bare name (source, medium, ...)."""
        return {k: v for k, v in asdict(self).items() if v}

    def to_utm_dict(self) -> dict[str, str]:
        """Non-empty fields keyed by utm_* name."""
        return {f"utm_{k}": v for k, v in self.to_dict().items()}


@dataclass
class Touchpoint:
    """One recorded campaign visit."""

    timestamp: int  # epoch milliseconds
    source: str | None = None
    medium: str | None = None
    campaign: str | None = None
    term: str | None = None
    content: str | None = None
    id: str | None = None

    @classmethod
    def from_params(cls, params: CampaignParams, timestamp: int) -> Touchpoint:
        """Stamp campaign parameters with the visit time."""
        return cls(timestamp=timestamp, **asdict(params))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Touchpoint:
        """Create a Touchpoint from its stored dictionary form."""
        return cls(
            timestamp=int(data.get("timestamp", 0)),
            **{name: data.get(name) for name in CAMPAIGN_FIELDS},
        )

    @property
    def key(self) -> str:
        """Attribution key: source/medium/campaign with direct/none fallbacks."""
        return f"{self.source or 'direct'}/{self.medium or 'none'}/{self.campaign or 'none'}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return asdict(self)


@dataclass
class AttributionResult:
    """Attribution weights for one model."""

    model: AttributionModel
    touchpoints: list[Touchpoint] = field(default_factory=list)
    weights: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "model": self.model.value,
            "touchpoints": [tp.to_dict() for tp in self.touchpoints],
            "attribution": dict(self.weights),
        }


def get_utm_params(url: str) -> CampaignParams:
    """Extract campaign parameters from a URL's query string.

    Args:
        url: Absolute or relative URL (e.g. a landing page).

    Returns:
        CampaignParams with the utm_* values found (first value wins).
    """
    query = parse_qs(urlparse(url or "").query)
    return CampaignParams.from_mapping({k: v[0] for k, v in query.items() if v})


class TouchpointLedger:
    """Per-visitor touchpoint ledger backed by a key-value store.

    Example:
        ledger = TouchpointLedger(InMemoryStore())
        ledger.record_arrival_params({"utm_source": "google", "utm_medium": "cpc"})
        result = ledger.get_attribution(AttributionModel.LINEAR)
        print(result.weights)  # {"google/cpc/none": 1.0}
    """

    def __init__(self, store: KeyValueStore, max_touchpoints: int = MAX_TOUCHPOINTS):
        """
        Initialize ledger.

        Args:
            store: Store holding this visitor's attribution state
            max_touchpoints: Number of most recent touchpoints retained
        """
        self.store = store
        self.max_touchpoints = max_touchpoints

    def record_arrival_params(
        self,
        params: CampaignParams | Mapping[str, Any],
        now: int | None = None,
    ) -> Touchpoint | None:
        """
        Record the campaign parameters of a visit.

        Direct and organic visits (no campaign field set) leave the ledger
        untouched.

        Args:
            params: Campaign parameters (CampaignParams or utm_* mapping)
            now: Visit time in epoch milliseconds (defaults to now)

        Returns:
            The recorded Touchpoint, or None if nothing was recorded
        """
        if not isinstance(params, CampaignParams):
            params = CampaignParams.from_mapping(params)
        if not params.has_campaign_data:
            return None

        touchpoint = Touchpoint.from_params(params, now if now is not None else now_ms())

        if self.store.get(FIRST_TOUCH_KEY) is None:
            self.store.set(FIRST_TOUCH_KEY, touchpoint.to_dict())
            logger.debug(f"First touch recorded: {touchpoint.key}")

        self.store.set(LAST_TOUCH_KEY, touchpoint.to_dict())

        touchpoints = self.store.get(TOUCHPOINTS_KEY) or []
        touchpoints.append(touchpoint.to_dict())
        self.store.set(TOUCHPOINTS_KEY, touchpoints[-self.max_touchpoints:])

        return touchpoint

    def get_first_touch(self) -> Touchpoint | None:
        """Get the first-touch record."""
        data = self.store.get(FIRST_TOUCH_KEY)
        return Touchpoint.from_dict(data) if data else None

    def get_last_touch(self) -> Touchpoint | None:
        """Get the last-touch record."""
        data = self.store.get(LAST_TOUCH_KEY)
        return Touchpoint.from_dict(data) if data else None

    def get_touchpoints(self) -> list[Touchpoint]:
        """Get retained touchpoints, oldest first."""
        return [Touchpoint.from_dict(d) for d in self.store.get(TOUCHPOINTS_KEY) or []]

    def get_attribution(
        self,
        model: AttributionModel | str,
        now: int | None = None,
    ) -> AttributionResult | None:
        """
        Compute attribution weights under a model.

        Args:
            model: Attribution model to apply
            now: Reference time for time-decay ages (defaults to now)

        Returns:
            AttributionResult, or None when the model has no input
        """
        model = AttributionModel(model)
        first_touch = self.get_first_touch()
        last_touch = self.get_last_touch()

        if first_touch is None and last_touch is None:
            return None

        if model == AttributionModel.FIRST_TOUCH:
            return _single_touch(model, first_touch)
        if model == AttributionModel.LAST_TOUCH:
            return _single_touch(model, last_touch)

        touchpoints = self.get_touchpoints()
        if not touchpoints:
            return None

        if model == AttributionModel.LINEAR:
            return _linear_attribution(touchpoints)
        return _time_decay_attribution(touchpoints, now if now is not None else now_ms())

    def get_campaign_data(self, url: str | None = None) -> dict[str, Any]:
        """Snapshot of attribution state for enriching conversion events.

        Args:
            url: Current page URL for the current UTM parameters.

        Returns:
            Dictionary with first_touch, last_touch, current_utm and the
            linear attribution.
        """
        first_touch = self.get_first_touch()
        last_touch = self.get_last_touch()
        attribution = self.get_attribution(AttributionModel.LINEAR)
        return {
            "first_touch": first_touch.to_dict() if first_touch else None,
            "last_touch": last_touch.to_dict() if last_touch else None,
            "current_utm": get_utm_params(url).to_utm_dict() if url else {},
            "attribution": attribution.to_dict() if attribution else None,
        }

    def clear_attribution(self) -> None:
        """Remove all attribution data for this visitor."""
        for key in (FIRST_TOUCH_KEY, LAST_TOUCH_KEY, TOUCHPOINTS_KEY):
            self.store.delete(key)


def _single_touch(
    model: AttributionModel,
    touchpoint: Touchpoint | None,
) -> AttributionResult | None:
    """Full credit to a single touchpoint."""
    if touchpoint is None:
        return None
    return AttributionResult(
        model=model,
        touchpoints=[touchpoint],
        weights={touchpoint.key: 1.0},
    )


def _linear_attribution(touchpoints: list[Touchpoint]) -> AttributionResult:
    """
    Distribute credit equally across all touchpoints.

    Touchpoints sharing a key accumulate their shares.
    """
    weight = 1.0 / len(touchpoints)
    weights: dict[str, float] = {}
    for touchpoint in touchpoints:
        weights[touchpoint.key] = weights.get(touchpoint.key, 0.0) + weight

    return AttributionResult(
        model=AttributionModel.LINEAR,
        touchpoints=touchpoints,
        weights=weights,
    )


def _time_decay_attribution(touchpoints: list[Touchpoint], now: int) -> AttributionResult:
    """
    More credit to recent touchpoints.

    Each touchpoint weighs exp(-age_days / 7); weights are normalized to
    sum to 1. When every weight underflows to 0 the credit is split
    equally, as in the linear model.
    """
    raw = []
    for touchpoint in touchpoints:
        age_days = (now - touchpoint.timestamp) / MS_PER_DAY
        raw.append(math.exp(-age_days / TIME_DECAY_DAYS))

    total = sum(raw)
    if total == 0:
        raw = [1.0] * len(touchpoints)
        total = float(len(touchpoints))

    weights: dict[str, float] = {}
    for touchpoint, w in zip(touchpoints, raw, strict=True):
        weights[touchpoint.key] = weights.get(touchpoint.key, 0.0) + w / total

    return AttributionResult(
        model=AttributionModel.TIME_DECAY,
        touchpoints=touchpoints,
        weights=weights,
    )
