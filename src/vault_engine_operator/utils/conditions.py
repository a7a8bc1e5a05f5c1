"""Utilities for managing Kubernetes conditions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..constants import (
    COND_FAILURE,
    COND_STATUS_TRUE,
    PHASE_FAILURE,
    PHASE_SUCCESS,
    REASON_FAILED_TO_CREATE_ROLE,
)


def update_condition(
    conditions: list[dict[str, Any]],
    condition_type: str,
    status: str,
    reason: str,
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Update or add a condition to the conditions list.

    Args:
        conditions: List of existing conditions
        condition_type: Type of condition
        status: Status of condition ("True", "False", "Unknown")
        reason: Reason for the condition
        message: Human-readable message
        observed_generation: Generation when condition was observed

    Returns:
        Updated list of conditions
    """
    now = datetime.now(timezone.utc).isoformat()

    existing_idx = None
    for idx, cond in enumerate(conditions):
        if cond.get("type") == condition_type:
            existing_idx = idx
            break

    new_condition = {
        "type": condition_type,
        "status": status,
        "reason": reason,
        "message": message,
        "lastTransitionTime": now,
    }

    if observed_generation is not None:
        new_condition["observedGeneration"] = observed_generation

    if existing_idx is not None:
        existing = conditions[existing_idx]
        # Only update lastTransitionTime if status changed
        if existing.get("status") == status:
            new_condition["lastTransitionTime"] = existing.get("lastTransitionTime", now)
        conditions[existing_idx] = new_condition
    else:
        conditions.append(new_condition)

    return conditions


def set_failure_condition(
    conditions: list[dict[str, Any]],
    message: str,
    reason: str = REASON_FAILED_TO_CREATE_ROLE,
) -> list[dict[str, Any]]:
    """Replace the conditions with a single Failure condition.

    The transition time of a previous Failure condition is kept, so repeated
    failures with the same outcome leave the list unchanged.
    """
    previous = [cond for cond in conditions if cond.get("type") == COND_FAILURE][:1]
    return update_condition(previous, COND_FAILURE, COND_STATUS_TRUE, reason, message)


def failure_status(
    status: dict[str, Any],
    message: str,
    reason: str = REASON_FAILED_TO_CREATE_ROLE,
) -> dict[str, Any]:
    """Return ``status`` rewritten to report a failed reconcile."""
    status["conditions"] = set_failure_condition(list(status.get("conditions") or []), message, reason)
    status["phase"] = PHASE_FAILURE
    return status


def success_status(status: dict[str, Any], generation: int) -> dict[str, Any]:
    """Return ``status`` rewritten to report a successful reconcile."""
    status["conditions"] = []
    status["phase"] = PHASE_SUCCESS
    status["observedGeneration"] = generation
    return status
