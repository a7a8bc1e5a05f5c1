"""Generic reconciler for secret engine role resources."""

from __future__ import annotations

from typing import Any

from ..controller.tasks import TaskSupervisor
from ..roles.base import RoleKind
from ..store import ResourceStore
from ..tracing import trace_span
from ..utils.cache import ObjectCache
from ..utils.conditions import failure_status, success_status
from ..utils.errors import (
    ExternalAdapterError,
    NotFoundError,
    ReconcileError,
    TransientStoreError,
    sanitize_exception,
)
from ..utils.events import emit_role_created
from .base import BaseHandler, add_finalizer, has_finalizer
from .finalization import RoleFinalizer


class RoleReconciler(BaseHandler):
    """Bring the Vault role of each resource in line with its spec."""

    def __init__(
        self,
        role_kind: RoleKind,
        store: ResourceStore,
        cache: ObjectCache,
        finalizer: RoleFinalizer,
        tasks: TaskSupervisor,
    ):
        super().__init__(role_kind.kind)
        self.role_kind = role_kind
        self.store = store
        self.cache = cache
        self.finalizer = finalizer
        self.tasks = tasks

    def reconcile(self, key: str) -> None:
        """Reconcile the resource stored under ``key``.

        Raises:
            ReconcileError: If the role could not be created
            TransientStoreError: If the finalizer could not be added
        """
        obj = self.cache.get(key)
        if obj is None:
            self.logger.warning(f"{self.kind} {key} does not exist anymore")
            return

        meta = obj.get("metadata") or {}
        if meta.get("deletionTimestamp"):
            if has_finalizer(obj, self.role_kind.finalizer):
                self.tasks.spawn(f"finalize-{self.role_kind.registry_id(obj)}", self.finalizer.run, obj)
            return

        self.log_info(obj, f"Sync/Add/Update for {self.kind} {key}", event="reconcile", reason="Sync")
        self.reconcile_with_metrics(obj, lambda: self._sync(key, obj))

    def _sync(self, key: str, obj: dict[str, Any]) -> None:
        role_name = self.role_kind.role_name(obj)

        with trace_span("reconcile_role", kind=self.kind, attributes={"role.name": role_name}):
            if not has_finalizer(obj, self.role_kind.finalizer):
                try:
                    self.store.patch(key, add_finalizer(self.role_kind.finalizer))
                except NotFoundError:
                    self.logger.info(f"{self.kind} {key} was deleted before its finalizer was set")
                    return
                except TransientStoreError as e:
                    raise TransientStoreError(f"failed to set {self.kind} finalizer for {key}: {e}") from e

            adapter = self.role_kind.adapter_for(obj)
            try:
                adapter.create_role()
            except Exception as e:
                self._report_failure(key, obj, e)

            generation = (obj.get("metadata") or {}).get("generation", 0)
            try:
                self.store.patch_status(key, lambda status: success_status(status, generation))
            except NotFoundError:
                self.logger.info(f"{self.kind} {key} was deleted before its status was updated")
                return
            self.log_info(obj, f"Role {role_name} is in sync", event="reconcile", reason="Success")
            emit_role_created(obj, role_name)

    def _report_failure(self, key: str, obj: dict[str, Any], error: Exception) -> None:
        message = sanitize_exception(error)
        patch_error: Exception | None = None
        try:
            self.store.patch_status(key, lambda status: failure_status(status, message))
        except NotFoundError:
            pass
        except Exception as e:
            patch_error = e
            self.log_error(obj, "Failed to update status", error=e, event="reconcile", reason="StatusUpdateFailed")

        raise ReconcileError(
            [ExternalAdapterError(f"failed to create role: {message}"), patch_error]
        ) from error
