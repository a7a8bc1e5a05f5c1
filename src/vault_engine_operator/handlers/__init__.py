"""Handlers reconciling and finalizing role resources."""

from .base import BaseHandler, add_finalizer, has_finalizer, remove_finalizer
from .finalization import FinalizationState, RoleFinalizer
from .role import RoleReconciler

__all__ = [
    "BaseHandler",
    "FinalizationState",
    "RoleFinalizer",
    "RoleReconciler",
    "add_finalizer",
    "has_finalizer",
    "remove_finalizer",
]
