"""Informer-style object cache keyed by namespace/name."""

from __future__ import annotations

import copy
import threading
from typing import Any, Optional

from .errors import InvalidKeyError


def make_key(namespace: Optional[str], name: str) -> str:
    """Create a queue/cache key for a Kubernetes resource.

    Args:
        namespace: Resource namespace (None or empty for cluster-scoped objects)
        name: Resource name

    Returns:
        Key string, ``namespace/name`` or just ``name``
    """
    if not name:
        raise InvalidKeyError("resource name must not be empty")
    return f"{namespace}/{name}" if namespace else name


def split_key(key: str) -> tuple[Optional[str], str]:
    """Split a key produced by :func:`make_key` into namespace and name.

    Raises:
        InvalidKeyError: If the key is malformed
    """
    parts = key.split("/") if isinstance(key, str) else []
    if len(parts) == 1 and parts[0]:
        return None, parts[0]
    if len(parts) == 2 and all(parts):
        return parts[0], parts[1]
    raise InvalidKeyError(f"unexpected key format: {key!r}")


def key_for(obj: dict[str, Any]) -> str:
    """Compute the key of a resource body."""
    meta = obj.get("metadata") or {}
    return make_key(meta.get("namespace"), meta.get("name", ""))


class ObjectCache:
    """Thread-safe last-seen copy of every watched object.

    Objects are deep-copied on the way in and out so callers can mutate what
    they get without affecting the cache.
    """

    def __init__(self) -> None:
        self._items: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def set(self, obj: dict[str, Any]) -> str:
        """Store ``obj`` and return its key."""
        key = key_for(obj)
        with self._lock:
            self._items[key] = copy.deepcopy(obj)
        return key

    def delete(self, key: str) -> None:
        """Drop ``key`` if present."""
        with self._lock:
            self._items.pop(key, None)

    def get(self, key: str) -> Optional[dict[str, Any]]:
        """Return a copy of the cached object or None if absent."""
        with self._lock:
            obj = self._items.get(key)
        return copy.deepcopy(obj) if obj is not None else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._items
