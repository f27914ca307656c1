"""Key-value storage for per-client tracking state.

The identity, touchpoint and behavior stores persist small JSON documents
under fixed keys, the way a browser persists them in local storage. They are
written against the KeyValueStore interface so a shared external store can
replace the process-local map without touching the engine.
"""

from __future__ import annotations

import copy
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Minimal key-value store interface.

    Values are plain JSON-compatible Python objects. Implementations must
    return copies so callers can mutate what they read without affecting the
    stored value until they write it back.
    """

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the value stored under key, or None."""
        pass  # pragma: no cover

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store value under key, replacing any previous value."""
        pass  # pragma: no cover

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Missing keys are ignored."""
        pass  # pragma: no cover

    @abstractmethod
    def keys(self) -> Iterator[str]:
        """Iterate over the stored keys."""
        pass  # pragma: no cover

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def namespace(self, prefix: str) -> NamespacedStore:
        """Return a view of this store restricted to keys under prefix."""
        return NamespacedStore(self, prefix)


class InMemoryStore(KeyValueStore):
    """Process-local dictionary store.

    Suitable for a single process and for tests. Not shared across
    instances of a horizontally scaled deployment.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            value = self._data.get(key)
            return copy.deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> Iterator[str]:
        with self._lock:
            snapshot = list(self._data.keys())
        yield from snapshot

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class NamespacedStore(KeyValueStore):
    """View over another store with every key prefixed.

    Used to give each visitor (device) its own slice of a shared store.

    Example:
        >>> shared = InMemoryStore()
        >>> visitor = shared.namespace("device-123")
        >>> visitor.set("touchpoints", [])
        >>> list(shared.keys())
        ['device-123:touchpoints']
    """

    SEPARATOR = ":"

    def __init__(self, backend: KeyValueStore, prefix: str) -> None:
        if not prefix:
            raise ValueError("Namespace prefix must not be empty")
        self._backend = backend
        self._prefix = f"{prefix}{self.SEPARATOR}"

    @property
    def prefix(self) -> str:
        """Key prefix without the trailing separator."""
        return self._prefix[: -len(self.SEPARATOR)]

    def get(self, key: str) -> Any | None:
        return self._backend.get(self._prefix + key)

    def set(self, key: str, value: Any) -> None:
        self._backend.set(self._prefix + key, value)

    def delete(self, key: str) -> None:
        self._backend.delete(self._prefix + key)

    def keys(self) -> Iterator[str]:
        for key in self._backend.keys():
            if key.startswith(self._prefix):
                yield key[len(self._prefix):]
