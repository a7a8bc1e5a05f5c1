"""GCP secret engine roleset adapter."""

from __future__ import annotations

import logging
from typing import Any

import hvac

from ..constants import (
    GCP_MOUNT_POINT,
    GCP_ROLE_FINALIZER,
    KIND_GCP_ROLE,
    PLURAL_GCP_ROLE,
    RESOURCE_GCP_ROLE,
)
from ..utils.errors import ExternalAdapterError
from .base import RoleKind, VaultClientFactory, vault_call

logger = logging.getLogger(__name__)

SECRET_TYPES = ("access_token", "service_account_key")


class GCPRoleAdapter:
    """Manage a GCP roleset in Vault for a GCPRole resource."""

    def __init__(self, client: hvac.Client, spec: dict[str, Any], role_name: str):
        self.client = client
        self.spec = spec
        self.role_name = role_name
        self.mount_point = spec.get("path") or GCP_MOUNT_POINT

    def _validate(self) -> None:
        if not self.spec.get("project"):
            raise ExternalAdapterError("spec.project is required")
        if not self.spec.get("bindings"):
            raise ExternalAdapterError("spec.bindings is required")
        secret_type = self.spec.get("secretType")
        if secret_type and secret_type not in SECRET_TYPES:
            raise ExternalAdapterError(
                f"spec.secretType must be one of {', '.join(SECRET_TYPES)}, got {secret_type}"
            )

    def create_role(self) -> None:
        self._validate()
        with vault_call("gcp_create_roleset"):
            self.client.secrets.gcp.create_or_update_roleset(
                name=self.role_name,
                project=self.spec["project"],
                bindings=self.spec["bindings"],
                secret_type=self.spec.get("secretType"),
                token_scopes=self.spec.get("tokenScopes"),
                mount_point=self.mount_point,
            )
        logger.info(f"Configured GCP roleset {self.role_name} at {self.mount_point}")

    def delete_role(self, name: str) -> None:
        with vault_call("gcp_delete_roleset", ignore_missing=True):
            self.client.secrets.gcp.delete_roleset(name=name, mount_point=self.mount_point)
        logger.info(f"Deleted GCP roleset {name} at {self.mount_point}")


def gcp_role_kind(vault_client_factory: VaultClientFactory, cluster_name: str = "-") -> RoleKind:
    """Build the RoleKind for GCPRole resources."""

    def adapter_factory(obj: dict[str, Any], role_name: str) -> GCPRoleAdapter:
        return GCPRoleAdapter(vault_client_factory(obj), dict(obj.get("spec") or {}), role_name)

    return RoleKind(
        kind=KIND_GCP_ROLE,
        plural=PLURAL_GCP_ROLE,
        resource=RESOURCE_GCP_ROLE,
        finalizer=GCP_ROLE_FINALIZER,
        adapter_factory=adapter_factory,
        cluster_name=cluster_name,
    )
