"""Metrics module using Prometheus."""

from .prometheus_metrics import (
    APIMetrics,
    BookingMetrics,
    HTTPMetrics,
    RateLimitMetrics,
    setup_metrics,
    get_metrics_handler,
)

__all__ = [
    "APIMetrics",
    "BookingMetrics",
    "HTTPMetrics",
    "RateLimitMetrics",
    "setup_metrics",
    "get_metrics_handler",
]
