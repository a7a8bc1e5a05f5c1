"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_FINALIZATION_STARTED,
    EVENT_REASON_FINALIZATION_TIMED_OUT,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    EVENT_REASON_ROLE_CREATED,
    EVENT_REASON_ROLE_DELETED,
)


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        body: Full resource body (apiVersion, kind and metadata are used)
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        body,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_started(body: dict[str, Any]) -> None:
    """Emit reconcile started event."""
    emit_event(body, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(body: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_role_created(body: dict[str, Any], role_name: str) -> None:
    """Emit role created event."""
    emit_event(body, EVENT_REASON_ROLE_CREATED, f"Role {role_name} created or updated")


def emit_role_deleted(body: dict[str, Any], role_name: str) -> None:
    """Emit role deleted event."""
    emit_event(body, EVENT_REASON_ROLE_DELETED, f"Role {role_name} deleted")


def emit_finalization_started(body: dict[str, Any]) -> None:
    """Emit finalization started event."""
    emit_event(body, EVENT_REASON_FINALIZATION_STARTED, "Finalization started")


def emit_finalization_timed_out(body: dict[str, Any], role_name: str) -> None:
    """Emit finalization timed out event."""
    emit_event(
        body,
        EVENT_REASON_FINALIZATION_TIMED_OUT,
        f"Timed out deleting role {role_name}; removing finalizer anyway",
        type_="Warning",
    )
