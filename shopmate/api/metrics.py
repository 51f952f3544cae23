"""
Prometheus metrics for the HTTP layer and the provider cascade.

Request metrics are recorded by the latency middleware; provider attempt,
latency and adapter event metrics are recorded by the adapter manager.
All metrics live in the default registry and are exposed at ``/metrics``.
"""

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

REQUEST_COUNT = Counter(
    "shopmate_requests_total",
    "Total HTTP requests",
    ["endpoint", "method", "status"],
)

REQUEST_DURATION = Histogram(
    "shopmate_request_duration_ms",
    "Request latency in milliseconds",
    ["endpoint"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 15000, 30000),
)

PROVIDER_ATTEMPTS = Counter(
    "shopmate_provider_attempts_total",
    "Recommendation attempts per provider",
    ["provider", "outcome"],  # success, or an ErrorKind value
)

PROVIDER_LATENCY = Histogram(
    "shopmate_provider_latency_seconds",
    "Provider call latency in seconds",
    ["provider"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 15, 30),
)

ADAPTER_EVENTS = Counter(
    "shopmate_adapter_events_total",
    "Adapter manager events",
    ["event"],
)

ERRORS = Counter(
    "shopmate_errors_total",
    "Recommendation endpoint failures by type",
    ["error_type"],
)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------

def record_request(endpoint: str, method: str, status: int) -> None:
    """Increment the request counter."""
    REQUEST_COUNT.labels(endpoint=endpoint, method=method, status=str(status)).inc()


def observe_duration(endpoint: str, duration_ms: float) -> None:
    """Record request duration."""
    REQUEST_DURATION.labels(endpoint=endpoint).observe(duration_ms)


def record_provider_attempt(provider: str, outcome: str) -> None:
    """Count one provider attempt.

    ``outcome`` is ``success`` or the ErrorKind value of the failure.
    """
    PROVIDER_ATTEMPTS.labels(provider=provider, outcome=outcome).inc()


def provider_latency_observer(provider: str):
    """Return a ``timed_operation`` observer bound to ``provider``."""
    return PROVIDER_LATENCY.labels(provider=provider).observe


def record_adapter_event(event: str) -> None:
    """Count an adapter manager event (``provider-failed``, ...)."""
    ADAPTER_EVENTS.labels(event=event).inc()


def record_error(error_type: str) -> None:
    """Count a failed or degraded recommendation request."""
    ERRORS.labels(error_type=error_type).inc()


def metrics_response() -> tuple[bytes, str]:
    """Return (body, content_type) for the /metrics endpoint."""
    return generate_latest(), CONTENT_TYPE_LATEST
