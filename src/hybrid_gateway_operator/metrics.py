"""Prometheus metrics for the Hybrid Gateway Operator."""

from prometheus_client import Counter, Gauge, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "hybrid_gateway_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "hybrid_gateway_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

error_total = Counter(
    "hybrid_gateway_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)

# Desired state enforcement metrics
resources_applied_total = Counter(
    "hybrid_gateway_operator_resources_applied_total",
    "Total number of server-side apply patches issued",
    ["kind", "result"],
)

orphans_deleted_total = Counter(
    "hybrid_gateway_operator_orphans_deleted_total",
    "Total number of orphaned resources garbage collected",
    ["kind", "result"],
)

# Configuration drift detection metrics
drift_detected_total = Counter(
    "hybrid_gateway_operator_drift_detected_total",
    "Total number of configuration drift detections",
    ["kind", "resource_type"],
)

# Status metrics
status_updates_total = Counter(
    "hybrid_gateway_operator_status_updates_total",
    "Total number of route status patches",
    ["kind", "result"],
)

shared_status_entries = Gauge(
    "hybrid_gateway_operator_shared_status_entries",
    "Number of route/gateway keys tracked in the shared route status map",
)

# API call metrics
api_call_total = Counter(
    "hybrid_gateway_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "hybrid_gateway_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

rate_limit_hits_total = Counter(
    "hybrid_gateway_operator_rate_limit_hits_total",
    "Total number of rate limit hits",
    ["api_type"],
)
