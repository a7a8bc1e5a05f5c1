"""In-memory resource store and fake Vault role backend for tests."""

from __future__ import annotations

import copy
import threading
import time
from typing import Any, Iterator

from vault_engine_operator.roles.base import RoleKind
from vault_engine_operator.store import update_with_retry
from vault_engine_operator.utils.cache import key_for
from vault_engine_operator.utils.errors import ConflictError, ExternalAdapterError, NotFoundError

TEST_FINALIZER = "testrole.engine.kubevault.com"


class InMemoryResourceStore:
    """ResourceStore keeping objects in a dict, with resourceVersion checks.

    Objects whose deletionTimestamp is set are removed once their last
    finalizer is gone, as the API server would do.
    """

    def __init__(self) -> None:
        self.objects: dict[str, dict[str, Any]] = {}
        self.writes: list[tuple[str, str, dict[str, Any]]] = []
        self.write_errors: list[Exception] = []
        self.lock = threading.Lock()

    def add(self, obj: dict[str, Any]) -> str:
        obj = copy.deepcopy(obj)
        obj.setdefault("metadata", {})["resourceVersion"] = "1"
        key = key_for(obj)
        with self.lock:
            self.objects[key] = obj
        return key

    def get(self, key: str) -> dict[str, Any]:
        with self.lock:
            if key not in self.objects:
                raise NotFoundError(f"{key} not found")
            return copy.deepcopy(self.objects[key])

    def list(self) -> list[dict[str, Any]]:
        with self.lock:
            return [copy.deepcopy(obj) for obj in self.objects.values()]

    def watch(self, stop_event: threading.Event) -> Iterator[dict[str, Any]]:
        for obj in self.list():
            yield {"type": "ADDED", "object": obj}

    def _write(self, key: str, body: dict[str, Any], kind: str) -> dict[str, Any]:
        with self.lock:
            if self.write_errors:
                raise self.write_errors.pop(0)
            current = self.objects.get(key)
            if current is None:
                raise NotFoundError(f"{key} not found")
            if body["metadata"].get("resourceVersion") != current["metadata"]["resourceVersion"]:
                raise ConflictError(f"conflict updating {key}")

            if kind == "status":
                new = copy.deepcopy(current)
                new["status"] = copy.deepcopy(body.get("status"))
            else:
                new = copy.deepcopy(body)
                if "status" in current:
                    new["status"] = copy.deepcopy(current["status"])
            new["metadata"]["resourceVersion"] = str(int(current["metadata"]["resourceVersion"]) + 1)

            self.writes.append((kind, key, copy.deepcopy(new)))
            if new["metadata"].get("deletionTimestamp") and not new["metadata"].get("finalizers"):
                del self.objects[key]
            else:
                self.objects[key] = new
            return copy.deepcopy(new)

    def patch(self, key: str, mutate: Any) -> dict[str, Any]:
        return update_with_retry(lambda: self.get(key), lambda body: self._write(key, body, "patch"), mutate)

    def patch_status(self, key: str, mutate: Any) -> dict[str, Any]:
        def mutate_status(obj: dict[str, Any]) -> dict[str, Any]:
            obj["status"] = mutate(dict(obj.get("status") or {}))
            return obj

        return update_with_retry(lambda: self.get(key), lambda body: self._write(key, body, "status"), mutate_status)

    def writes_of(self, kind: str) -> list[dict[str, Any]]:
        return [body for write_kind, _, body in self.writes if write_kind == kind]


class FakeRoleBackend:
    """Stand-in for Vault: keeps roles in a dict and counts calls."""

    def __init__(self) -> None:
        self.roles: dict[str, dict[str, Any]] = {}
        self.create_calls: list[str] = []
        self.delete_calls: list[str] = []
        self.delete_times: list[float] = []
        self.fail_create = False
        self.fail_delete = False
        self.delete_delay = 0.0
        self.lock = threading.Lock()

    def create(self, name: str, spec: dict[str, Any]) -> None:
        with self.lock:
            self.create_calls.append(name)
            if self.fail_create:
                raise ExternalAdapterError("permission denied")
            self.roles[name] = copy.deepcopy(spec)

    def delete(self, name: str) -> None:
        if self.delete_delay:
            threading.Event().wait(self.delete_delay)
        with self.lock:
            self.delete_calls.append(name)
            self.delete_times.append(time.monotonic())
            if self.fail_delete:
                raise ExternalAdapterError("vault is sealed")
            self.roles.pop(name, None)


class FakeRoleAdapter:
    def __init__(self, backend: FakeRoleBackend, spec: dict[str, Any], role_name: str):
        self.backend = backend
        self.spec = spec
        self.role_name = role_name

    def create_role(self) -> None:
        self.backend.create(self.role_name, self.spec)

    def delete_role(self, name: str) -> None:
        self.backend.delete(name)


def make_role_kind(backend: FakeRoleBackend) -> RoleKind:
    return RoleKind(
        kind="TestRole",
        plural="testroles",
        resource="testrole",
        finalizer=TEST_FINALIZER,
        adapter_factory=lambda obj, role_name: FakeRoleAdapter(backend, dict(obj.get("spec") or {}), role_name),
    )


def make_role(
    name: str = "my-role",
    namespace: str = "demo",
    finalizers: list[str] | None = None,
    deleting: bool = False,
    generation: int = 1,
    spec: dict[str, Any] | None = None,
) -> dict[str, Any]:
    meta: dict[str, Any] = {
        "name": name,
        "namespace": namespace,
        "uid": f"uid-{name}",
        "generation": generation,
    }
    if finalizers is not None:
        meta["finalizers"] = list(finalizers)
    if deleting:
        meta["deletionTimestamp"] = "2024-01-01T00:00:00Z"
    return {
        "apiVersion": "engine.kubevault.com/v1alpha1",
        "kind": "TestRole",
        "metadata": meta,
        "spec": spec if spec is not None else {"project": "my-project", "bindings": "resource {}"},
    }

