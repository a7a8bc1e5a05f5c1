"""Per-item exponential backoff for requeued work."""

from __future__ import annotations

import threading
from collections.abc import Hashable


class ItemExponentialBackoff:
    """Track failures per item and compute the next retry delay.

    The delay for an item is ``base_delay * factor ** failures``, capped at
    ``max_delay``. Each call to :meth:`when` counts as one more failure.
    """

    def __init__(self, base_delay: float = 1.0, max_delay: float = 60.0, factor: float = 2.0):
        if base_delay <= 0:
            raise ValueError("base_delay must be positive")
        if max_delay < base_delay:
            raise ValueError("max_delay must not be smaller than base_delay")
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.factor = factor
        self._failures: dict[Hashable, int] = {}
        self._lock = threading.Lock()

    def when(self, item: Hashable) -> float:
        """Record a failure for ``item`` and return how long to wait before retrying it."""
        with self._lock:
            failures = self._failures.get(item, 0)
            self._failures[item] = failures + 1
        try:
            delay = self.base_delay * self.factor**failures
        except OverflowError:
            return self.max_delay
        return min(delay, self.max_delay)

    def num_requeues(self, item: Hashable) -> int:
        """Return how many failures have been recorded for ``item``."""
        with self._lock:
            return self._failures.get(item, 0)

    def forget(self, item: Hashable) -> None:
        """Stop tracking ``item``; its next failure starts from the base delay."""
        with self._lock:
            self._failures.pop(item, None)
