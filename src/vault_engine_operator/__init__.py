"""Vault Engine Operator: reconciles Vault secret engine roles from Kubernetes resources."""

__version__ = "0.1.0"
