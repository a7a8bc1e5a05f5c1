"""Builders for Vault server configuration."""

from .etcd import EtcdStorageOptions, create_etcd_storage_from_spec

__all__ = ["EtcdStorageOptions", "create_etcd_storage_from_spec"]
