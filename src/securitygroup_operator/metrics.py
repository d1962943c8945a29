"""Prometheus metrics for the SecurityGroup Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "securitygroup_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "securitygroup_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

error_total = Counter(
    "securitygroup_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)

resource_status_total = Counter(
    "securitygroup_operator_resource_status_total",
    "Resource status observations after a reconciliation",
    ["kind", "status"],
)

# DCS security group operation metrics
dcs_operations_total = Counter(
    "securitygroup_operator_dcs_operations_total",
    "Total number of DCS security group operations",
    ["operation", "result"],
)

# API call metrics
api_call_total = Counter(
    "securitygroup_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "securitygroup_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

rate_limit_hits_total = Counter(
    "securitygroup_operator_rate_limit_hits_total",
    "Total number of calls delayed by the client-side rate limiter",
    ["api_type"],
)
