"""Operator error types and error sanitization utilities."""

from __future__ import annotations

import re
from typing import Any, Iterable


class OperatorError(Exception):
    """Base class for all operator errors."""


class TransientStoreError(OperatorError):
    """Reading or writing the resource store failed; retried via requeue."""


class ConflictError(TransientStoreError):
    """A write was rejected because the resource version was stale."""


class NotFoundError(OperatorError):
    """The resource or its external counterpart no longer exists."""


class ExternalAdapterError(OperatorError):
    """A call against the secret backend failed."""


class InvalidKeyError(OperatorError):
    """A queue key or watched object is malformed."""


class ReconcileError(OperatorError):
    """Aggregate of errors raised during a single reconcile."""

    def __init__(self, errors: Iterable[BaseException]):
        self.errors = [e for e in errors if e is not None]
        if len(self.errors) == 1:
            message = str(self.errors[0])
        else:
            message = "[" + ", ".join(str(e) for e in self.errors) + "]"
        super().__init__(message)


# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"(hvs\.)[A-Za-z0-9_\-]+",
    r"\b(s\.)[A-Za-z0-9]{24}\b",
    r"(private_key_data[:\s\"=]+)[A-Za-z0-9/+=]+",
    r"(secret_key[:\s\"=]+)[A-Za-z0-9/+=]+",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "token",
    "secret_id",
    "secret_key",
    "private_key",
    "password",
    "credentials",
}


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove sensitive information.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, r"\1[REDACTED]", sanitized, flags=re.IGNORECASE)

    for field in SENSITIVE_FIELDS:
        sanitized = re.sub(
            rf"\b{field}[:=\s]+([^\s,;\)]+)",
            rf"{field}: [REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: BaseException) -> str:
    """Sanitize exception message."""
    return sanitize_error_message(str(error))


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """Sanitize dictionary by redacting sensitive fields.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Additional keys to redact (merged with SENSITIVE_FIELDS)

    Returns:
        Sanitized dictionary with sensitive values redacted
    """
    all_sensitive = SENSITIVE_FIELDS | (sensitive_keys or set())
    sanitized: dict[str, Any] = {}

    for key, value in data.items():
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in all_sensitive):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value

    return sanitized
