"""Prometheus metrics definitions and helpers.

Metric groups take the registry as a constructor argument so tests can use a
private ``CollectorRegistry`` instead of the process-wide default.
"""

from typing import Callable

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    REGISTRY,
    CollectorRegistry,
)


class HTTPMetrics:
    """Request-level metrics for the booking API."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize HTTP metrics.

        Args:
            registry: Prometheus registry to use
        """
        self.requests_total = Counter(
            "booknview_http_requests_total",
            "Total HTTP requests",
            ["method", "path", "status"],
            registry=registry,
        )

        self.request_duration = Histogram(
            "booknview_http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "path"],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry,
        )

        self.requests_in_flight = Gauge(
            "booknview_http_requests_in_flight",
            "Number of HTTP requests currently being processed",
            registry=registry,
        )


class BookingMetrics:
    """Business metrics for bookings, payments and show maintenance."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        self.bookings_created = Counter(
            "booknview_bookings_created_total",
            "Bookings created",
            ["channel"],
            registry=registry,
        )

        self.bookings_cancelled = Counter(
            "booknview_bookings_cancelled_total",
            "Bookings cancelled by customers",
            registry=registry,
        )

        self.payments = Counter(
            "booknview_payments_total",
            "Payment gateway operations",
            ["operation", "outcome"],
            registry=registry,
        )

        self.shows_deactivated = Counter(
            "booknview_shows_deactivated_total",
            "Past shows deactivated by the cleanup job",
            registry=registry,
        )


class RateLimitMetrics:
    """Rate limiter rejections per policy."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        self.rejections = Counter(
            "booknview_rate_limit_rejections_total",
            "Requests rejected by a rate limit policy",
            ["policy"],
            registry=registry,
        )


class APIMetrics:
    """All metric groups registered for one API process."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        self.registry = registry
        self.http = HTTPMetrics(registry)
        self.bookings = BookingMetrics(registry)
        self.rate_limits = RateLimitMetrics(registry)


def setup_metrics(registry: CollectorRegistry = REGISTRY) -> APIMetrics:
    """Setup and return metric instances.

    Args:
        registry: Registry the metric groups are attached to

    Returns:
        APIMetrics bundle
    """
    return APIMetrics(registry)


def get_metrics_handler(registry: CollectorRegistry = REGISTRY) -> Callable[[], bytes]:
    """Get metrics handler for HTTP endpoint.

    Returns:
        Function that generates Prometheus metrics output
    """

    def metrics_handler() -> bytes:
        return generate_latest(registry)

    return metrics_handler
