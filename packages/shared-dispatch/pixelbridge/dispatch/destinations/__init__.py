"""Destination platform clients.

Import this module to auto-register all destinations.

Example:
    # Import destinations module to register all clients
    import pixelbridge.dispatch.destinations  # noqa: F401

    # Or import specific clients
    from pixelbridge.dispatch.destinations.facebook import FacebookClient
"""

from __future__ import annotations

from pixelbridge.dispatch.destinations.facebook import FacebookClient as FacebookClient
from pixelbridge.dispatch.destinations.google import GoogleClient as GoogleClient
from pixelbridge.dispatch.destinations.linkedin import LinkedInClient as LinkedInClient
from pixelbridge.dispatch.destinations.microsoft import MicrosoftClient as MicrosoftClient
from pixelbridge.dispatch.destinations.mixpanel import MixpanelClient as MixpanelClient
from pixelbridge.dispatch.destinations.pinterest import PinterestClient as PinterestClient
from pixelbridge.dispatch.destinations.reddit import RedditClient as RedditClient
from pixelbridge.dispatch.destinations.snapchat import SnapchatClient as SnapchatClient
from pixelbridge.dispatch.destinations.tiktok import TikTokClient as TikTokClient
from pixelbridge.dispatch.destinations.twitter import TwitterClient as TwitterClient

__all__ = [
    "FacebookClient",
    "GoogleClient",
    "TikTokClient",
    "SnapchatClient",
    "PinterestClient",
    "TwitterClient",
    "LinkedInClient",
    "RedditClient",
    "MicrosoftClient",
    "MixpanelClient",
]
