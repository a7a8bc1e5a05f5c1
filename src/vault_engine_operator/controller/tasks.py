"""Supervision of detached background tasks."""

from __future__ import annotations

import contextvars
import logging
import threading
import time
from typing import Any, Callable

logger = logging.getLogger(__name__)


class TaskSupervisor:
    """Run fire-and-forget work in daemon threads and stop it on shutdown.

    Tasks receive the supervisor's ``stop_event`` through their own wiring
    and are expected to return promptly once it is set. :meth:`shutdown`
    first waits up to a grace period for tasks to finish on their own, then
    sets the stop event and abandons whatever is still running.
    """

    def __init__(self) -> None:
        self.stop_event = threading.Event()
        self._threads: set[threading.Thread] = set()
        self._lock = threading.Lock()

    def spawn(self, name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> threading.Thread | None:
        """Start ``fn(*args, **kwargs)`` in a new thread.

        Returns:
            The started thread, or None if the supervisor is shutting down
        """
        if self.stop_event.is_set():
            logger.warning(f"Not starting task {name}: shutting down")
            return None

        ctx = contextvars.copy_context()

        def run() -> None:
            try:
                ctx.run(fn, *args, **kwargs)
            except Exception:
                logger.exception(f"Task {name} failed")
            finally:
                with self._lock:
                    self._threads.discard(threading.current_thread())

        thread = threading.Thread(target=run, name=name, daemon=True)
        with self._lock:
            self._threads.add(thread)
        thread.start()
        return thread

    def active(self) -> list[threading.Thread]:
        with self._lock:
            return list(self._threads)

    def shutdown(self, grace: float) -> list[str]:
        """Wait up to ``grace`` seconds for tasks, then cancel the rest.

        Returns:
            Names of the tasks still running when the grace period ended
        """
        deadline = time.monotonic() + grace
        for thread in self.active():
            thread.join(max(0.0, deadline - time.monotonic()))

        self.stop_event.set()
        abandoned = [thread.name for thread in self.active() if thread.is_alive()]
        if abandoned:
            logger.warning(f"Abandoning {len(abandoned)} task(s) after {grace}s grace: {', '.join(abandoned)}")
        return abandoned
