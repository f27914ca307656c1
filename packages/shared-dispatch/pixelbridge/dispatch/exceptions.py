"""Custom exceptions for event dispatch."""

from __future__ import annotations


class DispatchError(Exception):
    """Base exception for dispatch errors."""

    pass


class DestinationUnavailableError(DispatchError):
    """Raised when a destination's client library is absent or not loaded.

    The dispatcher skips the destination silently.
    """

    pass
