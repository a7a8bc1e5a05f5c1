"""Secret engine role kinds managed by the operator."""

from __future__ import annotations

from .aws import AWSRoleAdapter, aws_role_kind
from .base import RoleAdapter, RoleKind, VaultClientFactory, default_vault_client_factory, role_name_for
from .gcp import GCPRoleAdapter, gcp_role_kind


def default_role_kinds(vault_client_factory: VaultClientFactory, cluster_name: str = "-") -> list[RoleKind]:
    """Return every role kind the operator manages."""
    return [
        gcp_role_kind(vault_client_factory, cluster_name),
        aws_role_kind(vault_client_factory, cluster_name),
    ]


__all__ = [
    "AWSRoleAdapter",
    "GCPRoleAdapter",
    "RoleAdapter",
    "RoleKind",
    "VaultClientFactory",
    "aws_role_kind",
    "default_role_kinds",
    "default_vault_client_factory",
    "gcp_role_kind",
    "role_name_for",
]
