"""Prometheus metrics for the Vault Engine Operator."""

from prometheus_client import Counter, Gauge, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "vault_engine_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "vault_engine_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

error_total = Counter(
    "vault_engine_operator_error_total",
    "Total number of errors by type",
    ["kind", "error_type"],
)

# Finalization metrics
finalization_total = Counter(
    "vault_engine_operator_finalization_total",
    "Total number of finalization runs by outcome",
    ["kind", "result"],
)

finalization_in_flight = Gauge(
    "vault_engine_operator_finalization_in_flight",
    "Number of finalizations currently running",
    ["kind"],
)

# Queue metrics
queue_depth = Gauge(
    "vault_engine_operator_queue_depth",
    "Number of keys waiting in the work queue",
    ["kind"],
)

requeue_total = Counter(
    "vault_engine_operator_requeue_total",
    "Total number of rate limited requeues",
    ["kind"],
)

dropped_total = Counter(
    "vault_engine_operator_dropped_total",
    "Total number of keys dropped after exhausting retries or being malformed",
    ["kind", "reason"],
)

# API call metrics
api_call_total = Counter(
    "vault_engine_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "vault_engine_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)
