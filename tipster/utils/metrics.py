"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
premium_downgrades_total = Counter(
    "premium_downgrades_total",
    "Premium users downgraded to NORMAL",
    ["trigger"],  # request, sweep, revoke
)

premium_extensions_total = Counter(
    "premium_extensions_total",
    "Premium entitlement extensions",
    ["source"],  # payment, admin
)

payment_requests_total = Counter(
    "payment_requests_total",
    "Payment requests created",
    ["package_type"],
)

payment_resolutions_total = Counter(
    "payment_resolutions_total",
    "Payment requests resolved by an admin",
    ["status"],  # APPROVED, REJECTED
)

premium_denied_total = Counter(
    "premium_denied_total",
    "Detail requests denied for missing premium entitlement",
    ["content_type"],
)

# Gauges (set by the hourly stats snapshot)
premium_active_users = Gauge(
    "premium_active_users",
    "Users with an unexpired premium entitlement",
)

premium_expiring_soon_users = Gauge(
    "premium_expiring_soon_users",
    "Premium users expiring within 7 days",
)

# Histograms
premium_sweep_duration_seconds = Histogram(
    "premium_sweep_duration_seconds",
    "Duration of the scheduled premium sweep",
    buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 300],
)


router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
