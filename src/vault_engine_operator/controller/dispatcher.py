"""Watch event dispatch onto a worker pool."""

from __future__ import annotations

import contextvars
import logging
import threading
from typing import Any, Callable, Iterable, Optional

from .. import metrics
from ..constants import EVENT_DELETED
from ..utils.cache import ObjectCache, key_for
from ..utils.context import with_correlation_id
from ..utils.errors import InvalidKeyError, sanitize_exception
from .queue import WorkQueue

logger = logging.getLogger(__name__)


class Dispatcher:
    """Feed watch events into a WorkQueue and run a handler for each key.

    The dispatcher only schedules: it keeps the informer cache current,
    collapses repeated events for a key, and retries failed keys with
    backoff until ``max_requeues`` is reached.
    """

    def __init__(
        self,
        name: str,
        handler: Callable[[str], None],
        cache: ObjectCache,
        queue: Optional[WorkQueue] = None,
        workers: int = 4,
        max_requeues: int = 5,
    ):
        self.name = name
        self.handler = handler
        self.cache = cache
        self.queue = queue or WorkQueue()
        self.workers = workers
        self.max_requeues = max_requeues
        self._threads: list[threading.Thread] = []
        self._stop_event = threading.Event()
        self._running = False
        self._watch_failed = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def healthy(self) -> bool:
        """Running, and no watch thread has died."""
        return self._running and not self._watch_failed

    def handle_event(self, event: dict[str, Any]) -> Optional[str]:
        """Record a watch event in the cache and enqueue its key.

        Args:
            event: ``{"type": "ADDED" | "MODIFIED" | "DELETED" | None, "object": {...}}``

        Returns:
            The enqueued key, or None if the event was dropped
        """
        obj = event.get("object") or {}
        try:
            key = key_for(obj)
        except InvalidKeyError as e:
            logger.error(f"[{self.name}] Dropping malformed event: {e}")
            metrics.dropped_total.labels(kind=self.name, reason="invalid").inc()
            return None

        if event.get("type") == EVENT_DELETED:
            self.cache.delete(key)
        else:
            self.cache.set(obj)

        self.enqueue(key)
        return key

    def enqueue(self, key: str) -> None:
        self.queue.add(key)
        metrics.queue_depth.labels(kind=self.name).set(len(self.queue))

    def start(self, events: Optional[Iterable[dict[str, Any]]] = None) -> None:
        """Start the worker pool and, if given, a thread consuming ``events``."""
        if self._running:
            return
        self._running = True
        self._watch_failed = False
        self._stop_event.clear()

        for i in range(self.workers):
            # each worker gets its own copy of the caller's context (kopf posting vars)
            ctx = contextvars.copy_context()
            thread = threading.Thread(target=ctx.run, args=(self._worker,), name=f"{self.name}-worker-{i}", daemon=True)
            thread.start()
            self._threads.append(thread)

        if events is not None:
            ctx = contextvars.copy_context()
            thread = threading.Thread(target=ctx.run, args=(self._watch, events), name=f"{self.name}-watch", daemon=True)
            thread.start()
            self._threads.append(thread)

        logger.info(f"[{self.name}] Started {self.workers} worker(s)")

    def stop(self, timeout: float = 5.0) -> None:
        """Shut the queue down and wait up to ``timeout`` seconds for the threads."""
        if not self._running:
            return
        self._stop_event.set()
        self.queue.shut_down()
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
        self._running = False
        logger.info(f"[{self.name}] Stopped")

    def _watch(self, events: Iterable[dict[str, Any]]) -> None:
        try:
            for event in events:
                if self._stop_event.is_set():
                    return
                self.handle_event(event)
        except Exception as e:
            self._watch_failed = True
            logger.error(f"[{self.name}] Watch stream failed: {sanitize_exception(e)}")
            raise

    def _worker(self) -> None:
        while self.process_next_item():
            pass

    def process_next_item(self, timeout: Optional[float] = None) -> bool:
        """Process one key from the queue.

        Returns:
            False once the queue has shut down (or ``timeout`` expired), True otherwise
        """
        key = self.queue.get(timeout=timeout)
        if key is None:
            return False
        metrics.queue_depth.labels(kind=self.name).set(len(self.queue))

        try:
            with with_correlation_id():
                self.handler(key)
        except InvalidKeyError as e:
            logger.error(f"[{self.name}] Dropping {key}: {e}")
            metrics.dropped_total.labels(kind=self.name, reason="invalid").inc()
            self.queue.forget(key)
        except Exception as e:
            self._handle_error(key, e)
        else:
            self.queue.forget(key)
        finally:
            self.queue.done(key)
        return True

    def _handle_error(self, key: str, error: Exception) -> None:
        requeues = self.queue.num_requeues(key)
        if requeues < self.max_requeues:
            delay = self.queue.add_rate_limited(key)
            metrics.requeue_total.labels(kind=self.name).inc()
            logger.warning(
                f"[{self.name}] Error syncing {key} (attempt {requeues + 1}/{self.max_requeues}), "
                f"retrying in {delay:.1f}s: {sanitize_exception(error)}"
            )
            return

        logger.error(
            f"[{self.name}] Dropping {key} out of the queue after {requeues} retries: "
            f"{sanitize_exception(error)}"
        )
        metrics.dropped_total.labels(kind=self.name, reason="max_requeues").inc()
        self.queue.forget(key)
