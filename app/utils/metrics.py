"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
payment_webhooks_total = Counter(
    "payment_webhooks_total",
    "Payment webhook deliveries by outcome",
    ["outcome"],  # completed, failed, pending, duplicate, or the error class name
)

payment_transitions_total = Counter(
    "payment_transitions_total",
    "Applied payment status transitions",
    ["previous", "current"],
)

entitlement_activations_total = Counter(
    "entitlement_activations_total",
    "Entitlements granted after a confirmed payment",
    ["product_type"],
)

notifications_total = Counter(
    "notifications_total",
    "Outbox notification delivery attempts",
    ["kind", "status"],  # sent, retry, failed
)

email_requests_total = Counter(
    "email_requests_total",
    "Total email provider API requests",
    ["status"],
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

# Histograms
payment_webhook_duration_seconds = Histogram(
    "payment_webhook_duration_seconds",
    "Payment webhook processing duration",
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10],
)

email_request_duration_seconds = Histogram(
    "email_request_duration_seconds",
    "Email provider API request duration",
    buckets=[0.1, 0.5, 1, 2, 5, 10],
)

# Gauges
outbox_pending = Gauge(
    "outbox_pending",
    "Notification outbox rows waiting for delivery",
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
