"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own a
behavior import the metric and increment it at the point of action.
Scraped from GET /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # PaymentIntent creation is a provider round-trip, hence the 2.5s/5s tail.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------

PAYMENT_INTENTS_CREATED = Counter(
    "payment_intents_created_total",
    "PaymentIntents successfully created with the provider",
)

WEBHOOK_EVENTS = Counter(
    "webhook_events_total",
    "Provider webhook deliveries by event type and reconciliation outcome",
    # outcome: recorded|duplicate|ignored|rejected|failed
    ["event_type", "outcome"],
)

PURCHASES_RECORDED = Counter(
    "purchases_recorded_total",
    "Purchase ledger rows inserted by the reconciliation handler",
)

# ---------------------------------------------------------------------------
# Supporting services
# ---------------------------------------------------------------------------

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # hit|miss
)

LOGIN_LOOKUP_RETRIES = Counter(
    "login_lookup_retries_total",
    "Login user lookups that failed and were retried or abandoned",
    ["result"],  # retried|exhausted
)
