"""Resource store access with optimistic concurrency."""

from __future__ import annotations

import copy
import logging
import threading
import time
from typing import Any, Callable, Iterator, Optional, Protocol

from kubernetes import client, watch
from kubernetes.client.exceptions import ApiException

from . import metrics
from .utils.cache import split_key
from .utils.errors import ConflictError, NotFoundError, TransientStoreError

logger = logging.getLogger(__name__)

Mutator = Callable[[dict[str, Any]], dict[str, Any]]


class ResourceStore(Protocol):
    """Protocol for reading and mutating managed resources of a single kind."""

    def get(self, key: str) -> dict[str, Any]:
        """Return the current object; raise NotFoundError if it is gone."""
        ...

    def list(self) -> list[dict[str, Any]]:
        """Return all objects."""
        ...

    def watch(self, stop_event: threading.Event) -> Iterator[dict[str, Any]]:
        """Yield change events ``{"type": ..., "object": ...}`` until ``stop_event`` is set."""
        ...

    def patch(self, key: str, mutate: Mutator) -> dict[str, Any]:
        """Apply ``mutate`` to the object's metadata/spec with a version check."""
        ...

    def patch_status(self, key: str, mutate: Mutator) -> dict[str, Any]:
        """Apply ``mutate`` to the object's status with a version check."""
        ...


def update_with_retry(
    read: Callable[[], dict[str, Any]],
    write: Callable[[dict[str, Any]], dict[str, Any]],
    mutate: Mutator,
    retries: int = 5,
) -> dict[str, Any]:
    """Read the current object, apply a pure mutator and write it back.

    The write is skipped when the mutator leaves the object unchanged. A
    ConflictError from ``write`` restarts the cycle from a fresh read.

    Args:
        read: Returns the current object
        write: Persists the mutated object, raising ConflictError on a stale version
        mutate: Pure function from the current object to the desired one
        retries: Maximum number of write attempts

    Returns:
        The object as stored after the update

    Raises:
        NotFoundError: If the object disappears
        TransientStoreError: If every attempt conflicted
    """
    for attempt in range(1, retries + 1):
        current = read()
        desired = mutate(copy.deepcopy(current))
        if desired == current:
            return current
        try:
            return write(desired)
        except ConflictError:
            logger.debug(f"Conflict on attempt {attempt}/{retries}, retrying with a fresh read")
    raise TransientStoreError(f"giving up after {retries} conflicting updates")


def _translate(e: ApiException, key: str) -> Exception:
    if e.status == 404:
        return NotFoundError(f"{key} not found")
    if e.status == 409:
        return ConflictError(f"conflict updating {key}: {e.reason}")
    return TransientStoreError(f"API error for {key}: {e.status} {e.reason}")


class KubernetesResourceStore:
    """ResourceStore backed by the Kubernetes CustomObjectsApi."""

    def __init__(
        self,
        group: str,
        version: str,
        plural: str,
        api: Optional[client.CustomObjectsApi] = None,
        retries: int = 5,
        watch_retry_delay: float = 5.0,
    ):
        self.group = group
        self.version = version
        self.plural = plural
        self.api = api or client.CustomObjectsApi()
        self.retries = retries
        self.watch_retry_delay = watch_retry_delay

    def _call(self, operation: str, key: str, fn: Callable[..., Any], **kwargs: Any) -> Any:
        start_time = time.time()
        try:
            result = fn(group=self.group, version=self.version, plural=self.plural, **kwargs)
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
            return result
        except ApiException as e:
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="error").inc()
            raise _translate(e, key) from e
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)

    def get(self, key: str) -> dict[str, Any]:
        namespace, name = split_key(key)
        if namespace:
            return self._call("get", key, self.api.get_namespaced_custom_object, namespace=namespace, name=name)
        return self._call("get", key, self.api.get_cluster_custom_object, name=name)

    def list(self) -> list[dict[str, Any]]:
        result = self._call("list", self.plural, self.api.list_cluster_custom_object)
        return list(result.get("items", []))

    def watch(self, stop_event: threading.Event) -> Iterator[dict[str, Any]]:
        """Stream watch events, resuming from the last seen resourceVersion.

        A 410 restarts from a fresh list; any other API error is logged and the
        watch resumes after ``watch_retry_delay`` seconds.
        """
        resource_version = None
        while not stop_event.is_set():
            w = watch.Watch()
            kwargs: dict[str, Any] = {"timeout_seconds": 60}
            if resource_version:
                kwargs["resource_version"] = resource_version
            try:
                for event in w.stream(
                    self.api.list_cluster_custom_object,
                    group=self.group,
                    version=self.version,
                    plural=self.plural,
                    **kwargs,
                ):
                    if stop_event.is_set():
                        w.stop()
                        return
                    obj = event.get("object") or {}
                    resource_version = (obj.get("metadata") or {}).get("resourceVersion", resource_version)
                    yield {"type": event.get("type"), "object": obj}
            except ApiException as e:
                if e.status == 410:
                    logger.info(f"Watch of {self.plural} expired, relisting")
                    resource_version = None
                    continue
                metrics.api_call_total.labels(api_type="k8s", operation="watch", result="error").inc()
                logger.error(
                    f"Watch of {self.plural} failed: {_translate(e, self.plural)}, "
                    f"resuming in {self.watch_retry_delay:.1f}s"
                )
                stop_event.wait(self.watch_retry_delay)

    def _writer(self, key: str, status: bool) -> Callable[[dict[str, Any]], dict[str, Any]]:
        namespace, name = split_key(key)

        def write(body: dict[str, Any]) -> dict[str, Any]:
            # replace carries metadata.resourceVersion, so stale writes fail with 409
            if namespace:
                fn = (
                    self.api.replace_namespaced_custom_object_status
                    if status
                    else self.api.replace_namespaced_custom_object
                )
                return self._call("replace", key, fn, namespace=namespace, name=name, body=body)
            fn = self.api.replace_cluster_custom_object_status if status else self.api.replace_cluster_custom_object
            return self._call("replace", key, fn, name=name, body=body)

        return write

    def patch(self, key: str, mutate: Mutator) -> dict[str, Any]:
        return update_with_retry(lambda: self.get(key), self._writer(key, status=False), mutate, self.retries)

    def patch_status(self, key: str, mutate: Mutator) -> dict[str, Any]:
        def mutate_status(obj: dict[str, Any]) -> dict[str, Any]:
            obj["status"] = mutate(dict(obj.get("status") or {}))
            return obj

        return update_with_retry(lambda: self.get(key), self._writer(key, status=True), mutate_status, self.retries)
