"""Utility functions for the Vault Engine Operator."""

from .cache import ObjectCache, key_for, make_key, split_key
from .conditions import (
    failure_status,
    set_failure_condition,
    success_status,
    update_condition,
)
from .context import (
    get_context_dict,
    get_correlation_id,
    set_correlation_id,
    with_correlation_id,
)
from .events import emit_event
from .rate_limit import ItemExponentialBackoff

__all__ = [
    "ObjectCache",
    "key_for",
    "make_key",
    "split_key",
    "update_condition",
    "set_failure_condition",
    "failure_status",
    "success_status",
    "emit_event",
    "ItemExponentialBackoff",
    "set_correlation_id",
    "get_correlation_id",
    "with_correlation_id",
    "get_context_dict",
]
