"""Runtime configuration for the Vault Engine Operator."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping


@dataclass(frozen=True)
class OperatorConfig:
    """Operator settings, read once at startup."""

    workers: int = 4
    max_requeues: int = 5
    min_retry_delay: float = 1.0
    max_retry_delay: float = 60.0
    retry_backoff: float = 2.0
    finalizer_timeout: float = 30.0
    finalizer_interval: float = 5.0
    shutdown_grace: float = 10.0
    status_update_retries: int = 5
    cluster_name: str = "-"
    vault_addr: str | None = None
    metrics_port: int = 8080
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> OperatorConfig:
        """Build configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Returns:
            OperatorConfig instance

        Raises:
            ValueError: If a numeric setting cannot be parsed or is out of range
        """
        env = os.environ if environ is None else environ

        config = cls(
            workers=int(env.get("WORKERS", "4")),
            max_requeues=int(env.get("MAX_REQUEUES", "5")),
            min_retry_delay=float(env.get("MIN_RETRY_DELAY", "1.0")),
            max_retry_delay=float(env.get("MAX_RETRY_DELAY", "60.0")),
            retry_backoff=float(env.get("RETRY_BACKOFF", "2.0")),
            finalizer_timeout=float(env.get("FINALIZER_TIMEOUT_SECONDS", "30")),
            finalizer_interval=float(env.get("FINALIZER_INTERVAL_SECONDS", "5")),
            shutdown_grace=float(env.get("SHUTDOWN_GRACE_SECONDS", "10")),
            status_update_retries=int(env.get("STATUS_UPDATE_RETRIES", "5")),
            cluster_name=env.get("CLUSTER_NAME", "-"),
            vault_addr=env.get("VAULT_ADDR") or None,
            metrics_port=int(env.get("METRICS_PORT", "8080")),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Check value ranges."""
        if self.workers < 1:
            raise ValueError("WORKERS must be at least 1")
        if self.max_requeues < 0:
            raise ValueError("MAX_REQUEUES must not be negative")
        if self.finalizer_interval <= 0 or self.finalizer_timeout <= 0:
            raise ValueError("finalizer timeout and interval must be positive")
        if self.min_retry_delay <= 0 or self.max_retry_delay < self.min_retry_delay:
            raise ValueError("retry delays must satisfy 0 < MIN_RETRY_DELAY <= MAX_RETRY_DELAY")
        if self.status_update_retries < 1:
            raise ValueError("STATUS_UPDATE_RETRIES must be at least 1")
