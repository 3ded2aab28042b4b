"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
generation_requests_total = Counter(
    "generation_requests_total",
    "Total ID photo generation requests by final outcome",
    ["status"],  # success, <error kind>, cooldown
)

provider_attempts_total = Counter(
    "provider_attempts_total",
    "Total remote image generation calls",
    ["provider", "outcome"],  # outcome: success or error kind
)

generation_retries_total = Counter(
    "generation_retries_total",
    "Total retries scheduled after a retryable failure",
    ["failure_type"],
)

cooldowns_triggered_total = Counter(
    "cooldowns_triggered_total",
    "Total times the rate-limit cooldown was entered",
)

# Histograms
generation_duration_seconds = Histogram(
    "generation_duration_seconds",
    "End-to-end generation duration including backoff waits",
    buckets=[1, 5, 10, 30, 60, 120, 300],
)

provider_request_duration_seconds = Histogram(
    "provider_request_duration_seconds",
    "Single remote image generation call duration",
    ["provider"],
    buckets=[1, 5, 10, 30, 60, 120],
)

# Gauges
cooldown_remaining_seconds = Gauge(
    "cooldown_remaining_seconds",
    "Seconds left in the rate-limit cooldown (0 = idle)",
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
