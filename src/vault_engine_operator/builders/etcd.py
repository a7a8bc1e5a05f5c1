"""Builder for the etcd storage backend configuration of a Vault server."""

from __future__ import annotations

import posixpath
from typing import Any

from ..constants import (
    ETCD_CLIENT_CA_NAME,
    ETCD_CLIENT_CERT_NAME,
    ETCD_CLIENT_KEY_NAME,
    ETCD_PASSWORD_ENV,
    ETCD_TLS_ASSET_DIR,
    ETCD_TLS_ASSET_VOLUME,
    ETCD_USERNAME_ENV,
)

ETCD_STORAGE_FMT = """
storage "etcd" {{
{params}
}}
"""

# (spec key, config key) for the optional string fields, in output order
_STRING_FIELDS = (
    ("address", "address"),
    ("etcdApi", "etcd_api"),
    ("path", "path"),
    ("discoverySrv", "discovery_srv"),
)


def _bool_str(value: Any) -> str:
    return "true" if value else "false"


class EtcdStorageOptions:
    """Etcd storage options derived from a VaultServer ``backend.etcd`` spec.

    Note:
        - ``tlsSecretName`` is mounted at ETCD_TLS_ASSET_DIR
        - ``credentialSecretName`` is exposed through environment variables,
          so credentials never appear in the generated config
    """

    def __init__(self, spec: dict[str, Any]):
        self.spec = spec

    @property
    def tls_secret_name(self) -> str | None:
        return self.spec.get("tlsSecretName") or None

    @property
    def credential_secret_name(self) -> str | None:
        return self.spec.get("credentialSecretName") or None

    def get_storage_config(self) -> str:
        """Render the ``storage "etcd"`` stanza of the Vault configuration.

        vault doc: https://www.vaultproject.io/docs/configuration/storage/etcd.html
        """
        params = []
        for spec_key, config_key in _STRING_FIELDS:
            value = self.spec.get(spec_key)
            if value:
                params.append(f'{config_key} = "{value}"')

        params.append(f'ha_enabled = "{_bool_str(self.spec.get("haEnable"))}"')
        params.append(f'sync = "{_bool_str(self.spec.get("sync"))}"')

        if self.tls_secret_name:
            params.extend([
                f'tls_ca_file = "{posixpath.join(ETCD_TLS_ASSET_DIR, ETCD_CLIENT_CA_NAME)}"',
                f'tls_cert_file = "{posixpath.join(ETCD_TLS_ASSET_DIR, ETCD_CLIENT_CERT_NAME)}"',
                f'tls_key_file = "{posixpath.join(ETCD_TLS_ASSET_DIR, ETCD_CLIENT_KEY_NAME)}"',
            ])

        return ETCD_STORAGE_FMT.format(params="\n".join(params))

    def apply(self, pod_template: dict[str, Any]) -> dict[str, Any]:
        """Mutate a pod template in place for the etcd backend.

        - If tlsSecretName is provided, add a read-only volume for the etcd TLS assets
        - If credentialSecretName is provided, set ETCD_USERNAME and ETCD_PASSWORD

        Args:
            pod_template: PodTemplateSpec as a dict with at least one container

        Returns:
            The same pod template object

        Raises:
            ValueError: If the pod template has no containers
        """
        pod_spec = pod_template.get("spec")
        if pod_spec is None:
            pod_spec = pod_template["spec"] = {}
        containers = pod_spec.get("containers") or []
        if not containers:
            raise ValueError("pod template must define at least one container")
        container = containers[0]

        if self.tls_secret_name:
            _list_field(pod_spec, "volumes").append({
                "name": ETCD_TLS_ASSET_VOLUME,
                "secret": {"secretName": self.tls_secret_name},
            })
            _list_field(container, "volumeMounts").append({
                "name": ETCD_TLS_ASSET_VOLUME,
                "mountPath": ETCD_TLS_ASSET_DIR,
                "readOnly": True,
            })

        if self.credential_secret_name:
            _list_field(container, "env").extend([
                _secret_env(ETCD_USERNAME_ENV, self.credential_secret_name, "username"),
                _secret_env(ETCD_PASSWORD_ENV, self.credential_secret_name, "password"),
            ])

        return pod_template


def _list_field(obj: dict[str, Any], field: str) -> list[Any]:
    """Return obj[field] as a list, replacing a missing or null value."""
    if obj.get(field) is None:
        obj[field] = []
    return obj[field]


def _secret_env(name: str, secret_name: str, key: str) -> dict[str, Any]:
    return {
        "name": name,
        "valueFrom": {"secretKeyRef": {"name": secret_name, "key": key}},
    }


def create_etcd_storage_from_spec(backend_spec: dict[str, Any]) -> EtcdStorageOptions:
    """Create etcd storage options from a VaultServer ``spec.backend`` dict.

    Raises:
        ValueError: If the backend is not etcd
    """
    etcd_spec = backend_spec.get("etcd")
    if etcd_spec is None:
        raise ValueError("backend does not configure etcd")
    return EtcdStorageOptions(etcd_spec)
