"""Destination registry for managing available destination clients."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pixelbridge.tracking.config import Platform, PlatformConfig, TrackingConfig

if TYPE_CHECKING:
    from pixelbridge.dispatch.base import DestinationClient, PixelTransport

logger = logging.getLogger(__name__)


class DestinationRegistry:
    """Registry of available destination client implementations.

    Singleton pattern for global destination registration.

    Example:
        registry = get_registry()
        registry.register(Platform.FACEBOOK, FacebookClient)

        clients = registry.build_clients(TrackingConfig.from_env(), transport)
    """

    _instance: DestinationRegistry | None = None
    _clients: dict[Platform, type[DestinationClient]]

    def __new__(cls) -> DestinationRegistry:
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._clients = {}
        return cls._instance

    def register(self, platform: Platform, client_class: type[DestinationClient]) -> None:
        """Register a destination client implementation.

        Args:
            platform: The destination platform.
            client_class: The client class to use.
        """
        self._clients[platform] = client_class
        logger.debug(f"Registered destination: {platform.value}")

    def unregister(self, platform: Platform) -> None:
        """Unregister a destination platform."""
        if platform in self._clients:
            del self._clients[platform]

    def get(self, platform: Platform) -> type[DestinationClient] | None:
        """Get a client class by platform, or None if not registered."""
        return self._clients.get(platform)

    def create(
        self,
        config: PlatformConfig,
        transport: PixelTransport | None = None,
    ) -> DestinationClient:
        """Create a client instance from configuration.

        Raises:
            ValueError: If the platform is not registered.
        """
        client_class = self.get(config.platform)
        if client_class is None:
            raise ValueError(f"No destination registered for platform: {config.platform.value}")
        return client_class(config, transport)

    def build_clients(
        self,
        config: TrackingConfig,
        transport: PixelTransport | None = None,
    ) -> dict[Platform, DestinationClient]:
        """Create clients for every enabled, registered platform.

        Disabled platforms are absent from the result.
        """
        clients = {}
        for platform in config.enabled_platforms():
            if not self.is_registered(platform):
                logger.warning(f"Platform {platform.value} is enabled but has no client")
                continue
            clients[platform] = self.create(config.get(platform), transport)
        return clients

    def list_available(self) -> list[Platform]:
        """List all registered platforms."""
        return list(self._clients.keys())

    def is_registered(self, platform: Platform) -> bool:
        """Check if a platform is registered."""
        return platform in self._clients


# Global registry instance
_registry = DestinationRegistry()


def get_registry() -> DestinationRegistry:
    """Get the global destination registry."""
    return _registry
