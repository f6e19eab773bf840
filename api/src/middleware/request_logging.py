"""
Request logging and HTTP metrics middleware.

Every request gets a correlation id (taken from ``X-Correlation-ID`` when the
client sends one). The id is bound into structlog's context variables so all
log events emitted while handling the request carry it, and it is echoed back
in the response headers.
"""

import time
import uuid
from typing import Callable, Optional

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from shared.logging import bind_context, unbind_context
from shared.metrics import APIMetrics

logger = structlog.get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

QUIET_PATHS = ("/health", "/ready", "/metrics")


def route_label(request: Request) -> str:
    """Path template of the matched route, or the raw path when unmatched."""
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    return template or "unmatched"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request logging, correlation ids and metrics."""

    def __init__(self, app, metrics: Optional[APIMetrics] = None):
        """
        Initialize request logging middleware.

        Args:
            app: ASGI application
            metrics: Metric bundle to record into; None disables metrics
        """
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log details."""
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        method = request.method
        path = request.url.path
        quiet = path in QUIET_PATHS

        bind_context(correlation_id=correlation_id)
        if self.metrics:
            self.metrics.http.requests_in_flight.inc()

        start_time = time.perf_counter()
        if not quiet:
            logger.info(
                "request_started",
                method=method,
                path=path,
                client_ip=request.client.host if request.client else "unknown",
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=method,
                path=path,
                error=str(e),
                duration=f"{time.perf_counter() - start_time:.3f}s",
                exc_info=True,
            )
            raise
        finally:
            if self.metrics:
                self.metrics.http.requests_in_flight.dec()
            unbind_context("correlation_id")

        duration = time.perf_counter() - start_time
        if self.metrics:
            label = route_label(request)
            self.metrics.http.requests_total.labels(
                method=method, path=label, status=response.status_code
            ).inc()
            self.metrics.http.request_duration.labels(method=method, path=label).observe(duration)

        if not quiet:
            logger.info(
                "request_completed",
                method=method,
                path=path,
                status_code=response.status_code,
                duration=f"{duration:.3f}s",
                correlation_id=correlation_id,
            )

        response.headers[CORRELATION_HEADER] = correlation_id
        return response
