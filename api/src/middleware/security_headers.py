"""
Response hardening headers.

The header set is computed once from settings (see
``api.src.security.build_security_headers``) and stamped on every response.
"""

from typing import Callable, Dict

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to responses."""

    def __init__(self, app, headers: Dict[str, str]):
        super().__init__(app)
        self.headers = dict(headers)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        return response
