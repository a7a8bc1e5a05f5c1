"""Tests for the event dispatcher."""

from __future__ import annotations

import threading
import time
from unittest.mock import MagicMock

import pytest

from vault_engine_operator.controller.dispatcher import Dispatcher
from vault_engine_operator.controller.queue import WorkQueue
from vault_engine_operator.utils.cache import ObjectCache
from vault_engine_operator.utils.context import get_correlation_id
from vault_engine_operator.utils.errors import InvalidKeyError
from vault_engine_operator.utils.rate_limit import ItemExponentialBackoff

from helpers import make_role


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def dispatcher():
    queue = WorkQueue(ItemExponentialBackoff(base_delay=0.01, max_delay=0.05))
    d = Dispatcher("testroles", MagicMock(), ObjectCache(), queue=queue, workers=2, max_requeues=2)
    yield d
    d.stop(timeout=1.0)


class TestHandleEvent:
    """Test cases for feeding watch events."""

    def test_added_event_updates_cache_and_enqueues(self, dispatcher):
        """Test that an ADDED event is cached and its key queued."""
        key = dispatcher.handle_event({"type": "ADDED", "object": make_role("a")})

        assert key == "demo/a"
        assert dispatcher.cache.get("demo/a")["metadata"]["name"] == "a"
        assert len(dispatcher.queue) == 1

    def test_initial_list_event_without_type(self, dispatcher):
        """Test that events without a type are treated as upserts."""
        key = dispatcher.handle_event({"type": None, "object": make_role("a")})

        assert key in dispatcher.cache

    def test_deleted_event_removes_from_cache(self, dispatcher):
        """Test that a DELETED event drops the cached object but still enqueues."""
        dispatcher.handle_event({"type": "ADDED", "object": make_role("a")})
        dispatcher.queue.get(timeout=0.1)
        dispatcher.queue.done("demo/a")

        key = dispatcher.handle_event({"type": "DELETED", "object": make_role("a")})

        assert key == "demo/a"
        assert "demo/a" not in dispatcher.cache
        assert len(dispatcher.queue) == 1

    def test_repeated_events_collapse(self, dispatcher):
        """Test that several events for one key queue it once with the latest object."""
        dispatcher.handle_event({"type": "ADDED", "object": make_role("a", generation=1)})
        dispatcher.handle_event({"type": "MODIFIED", "object": make_role("a", generation=2)})

        assert len(dispatcher.queue) == 1
        assert dispatcher.cache.get("demo/a")["metadata"]["generation"] == 2

    def test_malformed_event_dropped(self, dispatcher, caplog):
        """Test that objects without a name are dropped and logged."""
        assert dispatcher.handle_event({"type": "ADDED", "object": {"metadata": {}}}) is None
        assert dispatcher.handle_event({"type": "ADDED"}) is None

        assert len(dispatcher.queue) == 0
        assert "Dropping malformed event" in caplog.text


class TestProcessNextItem:
    """Test cases for processing queued keys."""

    def test_success_forgets_key(self, dispatcher):
        """Test that a successful handler resets the key's backoff."""
        dispatcher.queue.backoff.when("demo/a")
        dispatcher.enqueue("demo/a")

        assert dispatcher.process_next_item(timeout=0.1) is True

        dispatcher.handler.assert_called_once_with("demo/a")
        assert dispatcher.queue.num_requeues("demo/a") == 0
        assert not dispatcher.queue.is_processing("demo/a")

    def test_handler_runs_with_correlation_id(self, dispatcher):
        """Test that every handler call gets a correlation id."""
        seen = []
        dispatcher.handler = lambda key: seen.append(get_correlation_id())
        dispatcher.enqueue("demo/a")

        dispatcher.process_next_item(timeout=0.1)

        assert seen[0] is not None
        assert get_correlation_id() is None

    def test_failure_requeues_with_backoff(self, dispatcher):
        """Test that a failing key is re-added after its backoff delay."""
        dispatcher.handler.side_effect = RuntimeError("vault is sealed")
        dispatcher.enqueue("demo/a")

        dispatcher.process_next_item(timeout=0.1)

        assert dispatcher.queue.num_requeues("demo/a") == 1
        assert dispatcher.queue.get(timeout=1.0) == "demo/a"

    def test_failure_dropped_after_max_requeues(self, dispatcher, caplog):
        """Test that a key is dropped and forgotten once max_requeues is reached."""
        dispatcher.handler.side_effect = RuntimeError("vault is sealed")
        dispatcher.enqueue("demo/a")

        for _ in range(dispatcher.max_requeues + 1):
            assert dispatcher.process_next_item(timeout=1.0) is True

        assert dispatcher.handler.call_count == dispatcher.max_requeues + 1
        assert dispatcher.queue.num_requeues("demo/a") == 0
        assert dispatcher.queue.get(timeout=0.2) is None
        assert "Dropping demo/a out of the queue" in caplog.text

    def test_invalid_key_is_not_retried(self, dispatcher):
        """Test that InvalidKeyError drops the key immediately."""
        dispatcher.handler.side_effect = InvalidKeyError("bad key")
        dispatcher.enqueue("demo/a")

        dispatcher.process_next_item(timeout=0.1)

        assert dispatcher.queue.num_requeues("demo/a") == 0
        assert dispatcher.queue.get(timeout=0.1) is None

    def test_returns_false_after_shutdown(self, dispatcher):
        """Test that process_next_item reports a shut down queue."""
        dispatcher.queue.shut_down()
        assert dispatcher.process_next_item() is False


class TestWorkers:
    """Test cases for the worker pool."""

    def test_start_processes_events(self, dispatcher):
        """Test that started workers pick up enqueued keys."""
        dispatcher.start()
        dispatcher.handle_event({"type": "ADDED", "object": make_role("a")})
        dispatcher.handle_event({"type": "ADDED", "object": make_role("b")})

        assert wait_for(lambda: dispatcher.handler.call_count == 2)
        assert dispatcher.running

    def test_start_consumes_event_stream(self, dispatcher):
        """Test that an event iterable is consumed by a watch thread."""
        events = [{"type": "ADDED", "object": make_role(name)} for name in ("a", "b", "c")]

        dispatcher.start(iter(events))

        assert wait_for(lambda: dispatcher.handler.call_count == 3)
        assert all(key in dispatcher.cache for key in ("demo/a", "demo/b", "demo/c"))

    @pytest.mark.filterwarnings("ignore::pytest.PytestUnhandledThreadExceptionWarning")
    def test_dead_watch_marks_unhealthy(self, dispatcher):
        """Test that a watch thread ending with an error leaves the dispatcher unhealthy."""

        def broken_stream():
            yield {"type": "ADDED", "object": make_role("a")}
            raise RuntimeError("connection reset")

        dispatcher.start(broken_stream())

        assert wait_for(lambda: not dispatcher.healthy)
        assert dispatcher.running
        assert wait_for(lambda: dispatcher.handler.call_count == 1)

    def test_stop_joins_workers(self, dispatcher):
        """Test that stop ends the worker threads."""
        dispatcher.start()
        threads = list(dispatcher._threads)

        dispatcher.stop(timeout=1.0)

        assert not dispatcher.running
        assert all(not t.is_alive() for t in threads)

    def test_one_worker_per_key(self):
        """Test that a key is never handled by two workers at once."""
        active = {"count": 0, "max": 0, "calls": 0}
        lock = threading.Lock()

        def handler(key):
            with lock:
                active["count"] += 1
                active["calls"] += 1
                active["max"] = max(active["max"], active["count"])
            time.sleep(0.02)
            with lock:
                active["count"] -= 1

        d = Dispatcher("testroles", handler, ObjectCache(), workers=4)
        d.start()
        try:
            for _ in range(20):
                d.handle_event({"type": "MODIFIED", "object": make_role("a")})
                time.sleep(0.005)
            assert wait_for(lambda: len(d.queue) == 0 and not d.queue.is_processing("demo/a"))
        finally:
            d.stop(timeout=1.0)

        assert active["max"] == 1
        assert active["calls"] >= 2
