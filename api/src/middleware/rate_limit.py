"""
Policy-driven rate limiting middleware.

Each request is checked against every policy whose path prefix covers it
(see ``api.src.security.select_policies``). Counters live in the storage of a
slowapi ``Limiter`` (``memory://`` by default, Redis in multi-process
deployments) and use the fixed-window strategy from ``limits``.
"""

import time
from typing import AbstractSet, Callable, Dict, List, Optional, Tuple

import structlog
from fastapi import Request, status
from fastapi.responses import JSONResponse
from limits import RateLimitItem, RateLimitItemPerSecond
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from api.src.security import RateLimitPolicy, select_policies
from shared.metrics import APIMetrics

logger = structlog.get_logger(__name__)


def build_limiter(storage_uri: str = "memory://", enabled: bool = True) -> Limiter:
    """
    Create the slowapi limiter whose storage backs every policy.

    Args:
        storage_uri: limits storage URI
        enabled: False turns every check into a pass

    Returns:
        Limiter instance
    """
    return Limiter(
        key_func=get_remote_address,
        storage_uri=storage_uri,
        strategy="fixed-window",
        headers_enabled=False,
        enabled=enabled,
    )


def client_address(request: Request, trusted_proxies: AbstractSet[str] = frozenset()) -> str:
    """
    Identify the client a request is counted against.

    X-Forwarded-For is only read when the direct peer is a trusted proxy.

    Args:
        request: Incoming request
        trusted_proxies: Peer addresses allowed to forward client addresses

    Returns:
        Client address
    """
    peer = get_remote_address(request)
    if peer in trusted_proxies:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip() or peer
    return peer


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Admit or reject requests according to the policy table."""

    def __init__(
        self,
        app,
        limiter: Limiter,
        policies: Dict[str, RateLimitPolicy],
        api_prefix: str,
        trusted_proxies: AbstractSet[str] = frozenset(),
        metrics: Optional[APIMetrics] = None,
    ):
        """
        Initialize rate limit middleware.

        Args:
            app: ASGI application
            limiter: slowapi limiter providing the counter storage
            policies: Policy table keyed by name
            api_prefix: Versioned API prefix the routes are mounted under
            trusted_proxies: Peers whose X-Forwarded-For header identifies the client
            metrics: Metric bundle for rejection counts
        """
        super().__init__(app)
        self.limiter = limiter
        self.policies = policies
        self.api_prefix = api_prefix
        self.trusted_proxies = trusted_proxies
        self.metrics = metrics
        self._items: Dict[str, RateLimitItem] = {
            name: RateLimitItemPerSecond(policy.max_requests, policy.window_seconds)
            for name, policy in policies.items()
        }

    def _hit(self, policy: RateLimitPolicy, key: str) -> Tuple[bool, int, float]:
        item = self._items[policy.name]
        strategy = self.limiter.limiter
        allowed = strategy.hit(item, policy.name, key)
        reset_time, remaining = strategy.get_window_stats(item, policy.name, key)
        return allowed, remaining, reset_time

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.limiter.enabled:
            return await call_next(request)

        policies = select_policies(request.url.path, self.api_prefix, self.policies)
        if not policies:
            return await call_next(request)

        key = client_address(request, self.trusted_proxies)
        disclosed: List[Tuple[RateLimitPolicy, int, float]] = []

        for policy in policies:
            allowed, remaining, reset_time = self._hit(policy, key)
            if policy.standard_headers:
                disclosed.append((policy, remaining, reset_time))

            if not allowed:
                logger.warning(
                    "rate_limit_exceeded",
                    policy=policy.name,
                    client=key,
                    method=request.method,
                    path=request.url.path,
                )
                if self.metrics:
                    self.metrics.rate_limits.rejections.labels(policy=policy.name).inc()

                response = JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={"error": policy.message},
                )
                response.headers["Retry-After"] = str(self._seconds_until(reset_time))
                self._disclose(response, disclosed)
                return response

        response = await call_next(request)
        self._disclose(response, disclosed)
        return response

    @staticmethod
    def _seconds_until(reset_time: float) -> int:
        return max(1, int(reset_time - time.time()))

    def _disclose(self, response: Response, disclosed: List[Tuple[RateLimitPolicy, int, float]]) -> None:
        for policy, remaining, reset_time in disclosed:
            response.headers["RateLimit-Limit"] = str(policy.max_requests)
            response.headers["RateLimit-Remaining"] = str(max(0, remaining))
            response.headers["RateLimit-Reset"] = str(self._seconds_until(reset_time))
