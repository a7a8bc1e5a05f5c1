"""Role kind capability interface shared by all secret engine roles."""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Protocol

import hvac
import requests
from hvac.exceptions import InvalidPath, VaultError

from .. import metrics
from ..utils.errors import ExternalAdapterError, NotFoundError, sanitize_exception


class RoleAdapter(Protocol):
    """Protocol defining the operations a role adapter performs against Vault."""

    def create_role(self) -> None:
        """Create or update the role (idempotent upsert)."""
        ...

    def delete_role(self, name: str) -> None:
        """Delete the role; deleting a missing role succeeds."""
        ...


VaultClientFactory = Callable[[dict[str, Any]], hvac.Client]


def default_vault_client_factory(vault_addr: str | None = None) -> VaultClientFactory:
    """Return a factory building hvac clients for a resource.

    Authentication is left to hvac, which reads ``VAULT_TOKEN`` (and
    ``VAULT_ADDR`` when no address is given) from the environment.
    """

    def factory(obj: dict[str, Any]) -> hvac.Client:
        return hvac.Client(url=vault_addr) if vault_addr else hvac.Client()

    return factory


def role_name_for(obj: dict[str, Any], cluster_name: str = "-") -> str:
    """Derive the Vault role name of a managed resource."""
    meta = obj.get("metadata") or {}
    return f"k8s.{cluster_name}.{meta.get('namespace', 'default')}.{meta.get('name')}"


@contextmanager
def vault_call(operation: str, ignore_missing: bool = False) -> Iterator[None]:
    """Translate hvac errors into operator errors and record call metrics.

    Args:
        operation: Name used for metric labels and error messages
        ignore_missing: Treat a missing path (404) as success
    """
    start_time = time.time()
    try:
        yield
        metrics.api_call_total.labels(api_type="vault", operation=operation, result="success").inc()
    except InvalidPath as e:
        if ignore_missing:
            metrics.api_call_total.labels(api_type="vault", operation=operation, result="not_found").inc()
            return
        metrics.api_call_total.labels(api_type="vault", operation=operation, result="error").inc()
        raise NotFoundError(f"{operation}: {sanitize_exception(e)}") from e
    except (VaultError, requests.exceptions.RequestException) as e:
        metrics.api_call_total.labels(api_type="vault", operation=operation, result="error").inc()
        raise ExternalAdapterError(f"{operation} failed: {sanitize_exception(e)}") from e
    finally:
        duration = time.time() - start_time
        metrics.api_call_duration_seconds.labels(api_type="vault", operation=operation).observe(duration)


@dataclass(frozen=True)
class RoleKind:
    """Everything the generic engine needs to manage one role kind."""

    kind: str
    plural: str
    resource: str
    finalizer: str
    adapter_factory: Callable[[dict[str, Any], str], RoleAdapter]
    cluster_name: str = "-"

    def role_name(self, obj: dict[str, Any]) -> str:
        return role_name_for(obj, self.cluster_name)

    def adapter_for(self, obj: dict[str, Any]) -> RoleAdapter:
        """Bind an adapter to the resource's spec."""
        return self.adapter_factory(obj, self.role_name(obj))

    def registry_id(self, obj: dict[str, Any]) -> str:
        """Composite id used by the finalizer registry."""
        meta = obj.get("metadata") or {}
        return f"{self.resource}/{meta.get('namespace', '')}/{meta.get('name')}"
