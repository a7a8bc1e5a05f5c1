"""AWS secret engine role adapter."""

from __future__ import annotations

import json
import logging
from typing import Any

import hvac

from ..constants import (
    AWS_MOUNT_POINT,
    AWS_ROLE_FINALIZER,
    KIND_AWS_ROLE,
    PLURAL_AWS_ROLE,
    RESOURCE_AWS_ROLE,
)
from ..utils.errors import ExternalAdapterError
from .base import RoleKind, VaultClientFactory, vault_call

logger = logging.getLogger(__name__)

CREDENTIAL_TYPES = ("iam_user", "assumed_role", "federation_token")


class AWSRoleAdapter:
    """Manage an AWS role in Vault for an AWSRole resource."""

    def __init__(self, client: hvac.Client, spec: dict[str, Any], role_name: str):
        self.client = client
        self.spec = spec
        self.role_name = role_name
        self.mount_point = spec.get("path") or AWS_MOUNT_POINT

    def _policy_document(self) -> str | None:
        policy = self.spec.get("policyDocument")
        if isinstance(policy, dict):
            return json.dumps(policy, sort_keys=True)
        return policy or None

    def create_role(self) -> None:
        credential_type = self.spec.get("credentialType")
        if credential_type not in CREDENTIAL_TYPES:
            raise ExternalAdapterError(
                f"spec.credentialType must be one of {', '.join(CREDENTIAL_TYPES)}, got {credential_type}"
            )

        with vault_call("aws_create_role"):
            self.client.secrets.aws.create_or_update_role(
                name=self.role_name,
                credential_type=credential_type,
                policy_document=self._policy_document(),
                default_sts_ttl=self.spec.get("defaultSTSTTL"),
                max_sts_ttl=self.spec.get("maxSTSTTL"),
                role_arns=self.spec.get("roleARNs"),
                policy_arns=self.spec.get("policyARNs"),
                mount_point=self.mount_point,
            )
        logger.info(f"Configured AWS role {self.role_name} at {self.mount_point}")

    def delete_role(self, name: str) -> None:
        with vault_call("aws_delete_role", ignore_missing=True):
            self.client.secrets.aws.delete_role(name=name, mount_point=self.mount_point)
        logger.info(f"Deleted AWS role {name} at {self.mount_point}")


def aws_role_kind(vault_client_factory: VaultClientFactory, cluster_name: str = "-") -> RoleKind:
    """Build the RoleKind for AWSRole resources."""

    def adapter_factory(obj: dict[str, Any], role_name: str) -> AWSRoleAdapter:
        return AWSRoleAdapter(vault_client_factory(obj), dict(obj.get("spec") or {}), role_name)

    return RoleKind(
        kind=KIND_AWS_ROLE,
        plural=PLURAL_AWS_ROLE,
        resource=RESOURCE_AWS_ROLE,
        finalizer=AWS_ROLE_FINALIZER,
        adapter_factory=adapter_factory,
        cluster_name=cluster_name,
    )
