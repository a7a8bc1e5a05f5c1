"""Deduplicating, rate limited work queue."""

from __future__ import annotations

import collections
import threading
from typing import Optional

from ..utils.rate_limit import ItemExponentialBackoff


class WorkQueue:
    """FIFO of resource keys with per-key deduplication and exclusivity.

    - A key added while already waiting is not queued twice.
    - A key added while a worker processes it is queued again only after
      :meth:`done`, so no two workers ever hold the same key.
    - :meth:`add_rate_limited` delays re-adding by a per-key exponential backoff.
    """

    def __init__(self, backoff: Optional[ItemExponentialBackoff] = None):
        self.backoff = backoff or ItemExponentialBackoff()
        self._queue: collections.deque[str] = collections.deque()
        self._dirty: set[str] = set()
        self._processing: set[str] = set()
        self._timers: set[threading.Timer] = set()
        self._cond = threading.Condition()
        self._shutting_down = False

    def add(self, key: str) -> None:
        with self._cond:
            if self._shutting_down or key in self._dirty:
                return
            self._dirty.add(key)
            if key in self._processing:
                return
            self._queue.append(key)
            self._cond.notify()

    def get(self, timeout: Optional[float] = None) -> Optional[str]:
        """Block until a key is available.

        Args:
            timeout: Seconds to wait; None waits until a key arrives or shutdown

        Returns:
            The next key, or None on shutdown or timeout
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._queue or self._shutting_down, timeout=timeout):
                return None
            if not self._queue:
                return None
            key = self._queue.popleft()
            self._processing.add(key)
            self._dirty.discard(key)
            return key

    def done(self, key: str) -> None:
        """Mark ``key`` as processed, re-queueing it if it was added meanwhile."""
        with self._cond:
            self._processing.discard(key)
            if key in self._dirty and not self._shutting_down:
                self._queue.append(key)
                self._cond.notify()

    def add_after(self, key: str, delay: float) -> None:
        if delay <= 0:
            self.add(key)
            return

        with self._cond:
            if self._shutting_down:
                return

            def fire() -> None:
                with self._cond:
                    self._timers.discard(timer)
                self.add(key)

            timer = threading.Timer(delay, fire)
            timer.daemon = True
            self._timers.add(timer)
        timer.start()

    def add_rate_limited(self, key: str) -> float:
        """Re-add ``key`` after its backoff delay and return the delay used."""
        delay = self.backoff.when(key)
        self.add_after(key, delay)
        return delay

    def forget(self, key: str) -> None:
        self.backoff.forget(key)

    def num_requeues(self, key: str) -> int:
        return self.backoff.num_requeues(key)

    def shut_down(self) -> None:
        """Stop accepting keys, cancel pending delayed adds and wake all waiters."""
        with self._cond:
            self._shutting_down = True
            timers = list(self._timers)
            self._timers.clear()
            self._cond.notify_all()
        for timer in timers:
            timer.cancel()

    @property
    def shutting_down(self) -> bool:
        with self._cond:
            return self._shutting_down

    def is_processing(self, key: str) -> bool:
        with self._cond:
            return key in self._processing

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)
