"""Bounded-retry finalization of role resources."""

from __future__ import annotations

import enum
import threading
import time
from typing import Any, Callable, Optional

from .. import metrics
from ..controller.registry import FinalizerRegistry
from ..roles.base import RoleKind
from ..store import ResourceStore
from ..tracing import trace_span
from ..utils.cache import key_for
from ..utils.errors import NotFoundError
from ..utils.events import emit_finalization_started, emit_finalization_timed_out, emit_role_deleted
from .base import BaseHandler, remove_finalizer


class FinalizationState(str, enum.Enum):
    START = "Start"
    ATTEMPTING = "Attempting"
    DONE = "Done"
    FINALIZER_REMOVED = "FinalizerRemoved"
    TIMED_OUT = "TimedOut"
    CANCELLED = "Cancelled"
    SKIPPED = "Skipped"
    EXIT = "Exit"


class RoleFinalizer(BaseHandler):
    """Delete the Vault role of a terminating resource, then release its finalizer.

    Deletion is retried every ``interval`` seconds until ``timeout``. Once the
    loop ends, whether by success or timeout, the finalizer is removed one
    more time unconditionally so a resource never stays stuck terminating.
    If the backend stays unreachable for the whole window the Vault role is
    left behind.
    """

    def __init__(
        self,
        role_kind: RoleKind,
        store: ResourceStore,
        registry: FinalizerRegistry,
        timeout: float = 30.0,
        interval: float = 5.0,
        stop_event: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(role_kind.kind)
        self.role_kind = role_kind
        self.store = store
        self.registry = registry
        self.timeout = timeout
        self.interval = interval
        self.stop_event = stop_event or threading.Event()
        self.clock = clock

    def run(self, obj: dict[str, Any]) -> FinalizationState:
        """Finalize ``obj`` unless another attempt for it is in flight.

        Returns:
            The terminal state: FINALIZER_REMOVED, TIMED_OUT, CANCELLED or SKIPPED
        """
        resource_id = self.role_kind.registry_id(obj)
        if not self.registry.try_add(resource_id):
            self.log_info(obj, "Finalization already in progress", event="finalization", reason="AlreadyProcessing")
            return FinalizationState.SKIPPED

        metrics.finalization_in_flight.labels(kind=self.kind).inc()
        try:
            with trace_span("finalize_role", kind=self.kind, attributes={"resource.id": resource_id}):
                state = self._finalize(obj)
            metrics.finalization_total.labels(kind=self.kind, result=state.value).inc()
            return state
        finally:
            metrics.finalization_in_flight.labels(kind=self.kind).dec()
            self.registry.delete(resource_id)

    def _finalize(self, obj: dict[str, Any]) -> FinalizationState:
        key = key_for(obj)
        role_name = self.role_kind.role_name(obj)

        self.log_info(obj, f"Processing finalizer for {self.kind} {key}", event="finalization", reason="Started")
        emit_finalization_started(obj)

        state = FinalizationState.ATTEMPTING
        deadline = self.clock() + self.timeout
        finalization_done = False
        attempt = 0

        while True:
            self.log_info(obj, f"Finalizer attempt {attempt}", event="finalization", reason="Attempt", attempt=attempt)

            if self.clock() >= deadline:
                state = FinalizationState.TIMED_OUT
                break

            if not finalization_done:
                try:
                    self.role_kind.adapter_for(obj).delete_role(role_name)
                    finalization_done = True
                    state = FinalizationState.DONE
                    emit_role_deleted(obj, role_name)
                except Exception as e:
                    self.log_error(obj, "Failed to delete role", error=e, event="finalization", reason="DeleteFailed")

            if finalization_done:
                try:
                    self._remove_finalizer(key)
                    state = FinalizationState.FINALIZER_REMOVED
                    break
                except Exception as e:
                    self.log_error(obj, "Failed to remove finalizer", error=e, event="finalization", reason="RemoveFailed")

            remaining = deadline - self.clock()
            if self.stop_event.wait(max(0.0, min(self.interval, remaining))):
                state = FinalizationState.CANCELLED
                break
            attempt += 1

        if state is FinalizationState.CANCELLED:
            self.log_warning(obj, "Finalization cancelled by shutdown", event="finalization", reason="Cancelled")
            return state

        if state is FinalizationState.TIMED_OUT:
            self.log_warning(
                obj,
                f"Timed out after {self.timeout}s deleting role {role_name}",
                event="finalization",
                reason="TimedOut",
            )
            emit_finalization_timed_out(obj, role_name)

        try:
            self._remove_finalizer(key)
            self.log_info(obj, f"Removed finalizer for {self.kind} {key}", event="finalization", reason="FinalizerRemoved")
        except Exception as e:
            self.log_error(obj, "Failed to remove finalizer", error=e, event="finalization", reason="RemoveFailed")

        return state

    def _remove_finalizer(self, key: str) -> None:
        try:
            self.store.patch(key, remove_finalizer(self.role_kind.finalizer))
        except NotFoundError:
            pass
