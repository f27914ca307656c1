"""Destination client base class and pixel command transport."""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

from pixelbridge.dispatch.exceptions import DestinationUnavailableError
from pixelbridge.tracking.config import Platform, PlatformConfig
from pixelbridge.tracking.events import CanonicalEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PixelCommand:
    """One call into a platform's client library, e.g. fbq('track', 'Purchase', {...})."""

    function: str
    args: tuple[Any, ...]

    def render(self) -> str:
        """Render as a JavaScript statement."""
        rendered = ", ".join(json.dumps(arg, default=str) for arg in self.args)
        return f"{self.function}({rendered});"


class PixelTransport(ABC):
    """Delivers pixel commands to the platforms' client libraries."""

    @abstractmethod
    def is_loaded(self, platform: Platform) -> bool:
        """Return True if the platform's client library is present."""
        pass  # pragma: no cover

    @abstractmethod
    def send(self, platform: Platform, command: PixelCommand) -> None:
        """Deliver one command."""
        pass  # pragma: no cover


class CommandBuffer(PixelTransport):
    """Thread-safe buffer of pixel commands.

    Collects the commands of a page render or request so they can be
    emitted in one script block.

    Example:
        buffer = CommandBuffer()
        manager = TrackingManager(config, store, transport=buffer)
        manager.track("AddToCart", {"value": 20})
        manager.flush()
        script = buffer.render()
    """

    def __init__(self, loaded: Iterable[Platform] | None = None):
        """
        Initialize buffer.

        Args:
            loaded: Platforms whose client libraries are on the page.
                None means every platform is loaded.
        """
        self._loaded = set(loaded) if loaded is not None else None
        self._commands: list[tuple[Platform, PixelCommand]] = []
        self._lock = threading.Lock()

    def is_loaded(self, platform: Platform) -> bool:
        return self._loaded is None or platform in self._loaded

    def send(self, platform: Platform, command: PixelCommand) -> None:
        with self._lock:
            self._commands.append((platform, command))

    @property
    def commands(self) -> list[tuple[Platform, PixelCommand]]:
        """Snapshot of buffered commands."""
        with self._lock:
            return list(self._commands)

    def drain(self) -> list[tuple[Platform, PixelCommand]]:
        """Return and clear buffered commands."""
        with self._lock:
            commands, self._commands = self._commands, []
        return commands

    def render(self) -> str:
        """Render buffered commands as JavaScript, one statement per line."""
        return "\n".join(command.render() for _, command in self.commands)


class DestinationClient(ABC):
    """Abstract base class for destination platform clients.

    Subclasses must set the class attributes:
    - platform: The Platform enum value for this destination
    - event_map: Translation of every canonical event to the platform's name

    And implement:
    - build_commands(): Render the mapped event as pixel commands

    A subclass whose event_map misses a canonical event fails at class
    definition time with TypeError.

    Example:
        class AcmeClient(DestinationClient):
            platform = Platform.ACME
            event_map = {event: event.value for event in CanonicalEvent}

            def build_commands(self, event_name, data):
                return [PixelCommand("acme", ("track", event_name, data))]
    """

    platform: ClassVar[Platform]
    event_map: ClassVar[Mapping[CanonicalEvent, str]]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        """Validate that subclasses define platform and a complete event_map."""
        super().__init_subclass__(**kwargs)
        # Skip validation for abstract subclasses
        if ABC in cls.__bases__:
            return
        if getattr(cls, "platform", None) is None:
            raise TypeError(f"{cls.__name__} must define a 'platform' class attribute")
        event_map = getattr(cls, "event_map", None)
        if event_map is None:
            raise TypeError(f"{cls.__name__} must define an 'event_map' class attribute")
        missing = [event.value for event in CanonicalEvent if not event_map.get(event)]
        if missing:
            raise TypeError(
                f"{cls.__name__} event_map is missing canonical events: {', '.join(missing)}"
            )

    def __init__(self, config: PlatformConfig, transport: PixelTransport | None = None):
        """Initialize client.

        Args:
            config: Platform configuration (ids and options).
            transport: Where commands are delivered. None means the
                destination is unavailable.
        """
        self.config = config
        self.transport = transport

    @property
    def is_available(self) -> bool:
        """Return True if commands can currently be delivered."""
        return self.transport is not None and self.transport.is_loaded(self.platform)

    def map_event(self, event: CanonicalEvent) -> str:
        """Translate a canonical event into the platform's vocabulary."""
        return self.event_map[event]

    @abstractmethod
    def build_commands(
        self,
        event_name: str,
        data: dict[str, Any],
        event: CanonicalEvent,
    ) -> list[PixelCommand]:
        """Render a mapped event as pixel commands.

        Args:
            event_name: Platform event name from event_map.
            data: Enriched event data.
            event: The canonical event being sent.

        Returns:
            Commands to deliver, in order.
        """
        pass  # pragma: no cover

    def send(self, event: CanonicalEvent, data: dict[str, Any] | None = None) -> list[PixelCommand]:
        """Map and deliver one canonical event.

        Args:
            event: Canonical event.
            data: Enriched event data.

        Returns:
            Commands delivered.

        Raises:
            DestinationUnavailableError: If the client library is not loaded.
        """
        if not self.is_available:
            raise DestinationUnavailableError(f"{self.platform.value} client is not loaded")

        commands = self.build_commands(self.map_event(event), dict(data or {}), event)
        for command in commands:
            self.transport.send(self.platform, command)  # type: ignore[union-attr]
        logger.debug(f"Sent {event.value} to {self.platform.value} as {len(commands)} command(s)")
        return commands


class TrackCallClient(DestinationClient, ABC):
    """Client whose library is called as <function>(*leading_args, event_name, data).

    Subclasses set function (e.g. "snaptr") and, where the library takes no
    leading verb, leading_args = ().
    """

    function: ClassVar[str]
    leading_args: ClassVar[tuple[str, ...]] = ("track",)

    def build_commands(
        self,
        event_name: str,
        data: dict[str, Any],
        event: CanonicalEvent,
    ) -> list[PixelCommand]:
        return [PixelCommand(self.function, (*self.leading_args, event_name, data))]
