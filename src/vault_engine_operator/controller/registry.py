"""Registry of finalizations currently in flight."""

from __future__ import annotations

import threading


class FinalizerRegistry:
    """Track which resources have a finalization attempt running.

    One instance is shared by every finalization task of a controller
    manager. Entries exist only while an attempt is in flight and are not
    persisted; after a restart, resources still marked for deletion are
    re-dispatched and registered again.
    """

    def __init__(self) -> None:
        self._active: set[str] = set()
        self._lock = threading.Lock()

    def is_already_processing(self, resource_id: str) -> bool:
        with self._lock:
            return resource_id in self._active

    def add(self, resource_id: str) -> None:
        with self._lock:
            self._active.add(resource_id)

    def try_add(self, resource_id: str) -> bool:
        """Register ``resource_id`` unless it is already registered.

        Returns:
            True if this call registered the id, False if another attempt owns it
        """
        with self._lock:
            if resource_id in self._active:
                return False
            self._active.add(resource_id)
            return True

    def delete(self, resource_id: str) -> None:
        with self._lock:
            self._active.discard(resource_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._active)
