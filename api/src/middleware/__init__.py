"""FastAPI middleware components.

This package contains custom middleware for request/response processing:
correlation ids and request logging, policy-driven rate limiting and
response hardening headers.
"""

from api.src.middleware.rate_limit import (
    RateLimitMiddleware,
    build_limiter,
    client_address,
)
from api.src.middleware.request_logging import RequestLoggingMiddleware
from api.src.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "RateLimitMiddleware",
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "build_limiter",
    "client_address",
]
