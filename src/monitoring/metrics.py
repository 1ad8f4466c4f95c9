"""Prometheus metrics of the compliance engine.

HTTP metrics are recorded by ``PrometheusMiddleware``; domain counters
are incremented by the validator and the transfer evaluation service.
"""

from prometheus_client import Counter, Histogram

# =============================================================================
# HTTP METRICS
# =============================================================================

HTTP_REQUESTS_TOTAL = Counter(
    "compilo_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

HTTP_REQUEST_DURATION = Histogram(
    "compilo_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)


# =============================================================================
# DOMAIN METRICS
# =============================================================================

HIERARCHY_VALIDATION_FAILURES = Counter(
    "compilo_hierarchy_validation_failures_total",
    "Blocking hierarchy validation issues by rule",
    ["rule"],
)

TRANSFER_RISK_EVALUATIONS = Counter(
    "compilo_transfer_risk_evaluations_total",
    "Transfer risk evaluations by resulting level",
    ["level"],
)
