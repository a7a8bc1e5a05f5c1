"""Structured logging configuration for the Vault Engine Operator.

Resource events are written as one JSON object per line. Every record carries
the resource identity and the correlation id of the work item that produced
it; secret-looking fields and values are redacted before serialization.
"""

import json
import logging
import sys
from typing import Any

from .constants import CONTROLLER_NAME
from .utils.context import get_context_dict
from .utils.errors import sanitize_dict


def setup_structured_logging(level: str = "INFO") -> None:
    """Send JSON lines to stdout at the configured level."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def log_resource_event(
    logger: logging.Logger,
    resource_kind: str,
    resource_name: str,
    namespace: str,
    uid: str,
    event: str,
    reason: str,
    message: str,
    level: int = logging.INFO,
    controller: str = CONTROLLER_NAME,
    **kwargs: Any,
) -> None:
    """Log a structured resource event.

    Extra keyword arguments become additional fields of the record.
    """
    if not logger.isEnabledFor(level):
        return

    record = get_context_dict(
        {
            "controller": controller,
            "resource": resource_kind,
            "name": resource_name,
            "namespace": namespace,
            "uid": uid,
            "event": event,
            "reason": reason,
            "message": message,
            **kwargs,
        }
    )
    logger.log(level, json.dumps(sanitize_dict(record), default=str))
