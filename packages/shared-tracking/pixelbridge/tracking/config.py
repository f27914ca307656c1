"""Configuration models for tracking destinations."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Platform(str, Enum):
    """Supported destination platforms."""

    # Ads
    FACEBOOK = "facebook"
    GOOGLE = "google"
    TIKTOK = "tiktok"
    SNAPCHAT = "snapchat"
    PINTEREST = "pinterest"
    TWITTER = "twitter"
    LINKEDIN = "linkedin"
    REDDIT = "reddit"
    MICROSOFT = "microsoft"

    # Product analytics
    MIXPANEL = "mixpanel"


# Environment variable holding each platform's primary id. A platform is
# enabled exactly when this variable is set.
PLATFORM_ID_ENV: dict[Platform, str] = {
    Platform.FACEBOOK: "FACEBOOK_PIXEL_ID",
    Platform.GOOGLE: "GA4_MEASUREMENT_ID",
    Platform.TIKTOK: "TIKTOK_PIXEL_ID",
    Platform.SNAPCHAT: "SNAPCHAT_PIXEL_ID",
    Platform.PINTEREST: "PINTEREST_TAG_ID",
    Platform.TWITTER: "TWITTER_PIXEL_ID",
    Platform.LINKEDIN: "LINKEDIN_PARTNER_ID",
    Platform.REDDIT: "REDDIT_PIXEL_ID",
    Platform.MICROSOFT: "MICROSOFT_UET_TAG_ID",
    Platform.MIXPANEL: "MIXPANEL_TOKEN",
}

# Secondary settings per platform: option name -> environment variable
PLATFORM_OPTION_ENV: dict[Platform, dict[str, str]] = {
    Platform.FACEBOOK: {"test_event_code": "FACEBOOK_TEST_EVENT_CODE"},
    Platform.GOOGLE: {
        "tag_manager_id": "GTM_ID",
        "ads_conversion_id": "GOOGLE_ADS_CONVERSION_ID",
        "ads_conversion_label": "GOOGLE_ADS_CONVERSION_LABEL",
    },
    Platform.LINKEDIN: {"conversion_id": "LINKEDIN_CONVERSION_ID"},
}


@dataclass
class PlatformConfig:
    """Configuration for one destination platform."""

    platform: Platform
    tracking_id: str = ""  # Pixel / tag / measurement / partner id
    enabled: bool = False

    # Authentication (repr=False to prevent credential exposure in logs)
    credentials: dict[str, Any] = field(default_factory=dict, repr=False)

    # Platform-specific settings (test codes, conversion labels, ...)
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # A platform without an id cannot be addressed
        if not self.tracking_id:
            self.enabled = False


@dataclass
class TrackingConfig:
    """Explicit configuration for the tracking engine.

    Built once at process start and passed into the dispatcher. Platforms
    without an id are present but disabled, so lookups never fail.

    Example:
        config = TrackingConfig.from_env()
        for platform in config.enabled_platforms():
            print(platform.value)
    """

    platforms: dict[Platform, PlatformConfig] = field(default_factory=dict)
    events_endpoint: str | None = None  # Server-side storage endpoint
    sink_timeout: float = 5.0
    max_workers: int = 8

    def __post_init__(self) -> None:
        for platform in Platform:
            self.platforms.setdefault(platform, PlatformConfig(platform=platform))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TrackingConfig:
        """Create configuration from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (for tests).

        Returns:
            TrackingConfig instance.
        """
        env = os.environ if environ is None else environ

        platforms = {}
        for platform, id_var in PLATFORM_ID_ENV.items():
            tracking_id = (env.get(id_var) or "").strip()
            options = {
                name: env.get(var)
                for name, var in PLATFORM_OPTION_ENV.get(platform, {}).items()
                if env.get(var)
            }
            platforms[platform] = PlatformConfig(
                platform=platform,
                tracking_id=tracking_id,
                enabled=bool(tracking_id),
                options=options,
            )

        return cls(
            platforms=platforms,
            events_endpoint=env.get("PIXELBRIDGE_EVENTS_ENDPOINT") or None,
            sink_timeout=float(env.get("PIXELBRIDGE_SINK_TIMEOUT", "5.0")),
        )

    def get(self, platform: Platform) -> PlatformConfig:
        """Get a platform's configuration."""
        return self.platforms[platform]

    def is_enabled(self, platform: Platform) -> bool:
        """Return True if the platform is enabled."""
        return self.platforms[platform].enabled

    def enabled_platforms(self) -> list[Platform]:
        """List enabled platforms in declaration order."""
        return [p for p in Platform if self.platforms[p].enabled]
