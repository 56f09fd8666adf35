"""FastAPI middleware for per-client API rate limiting."""

from __future__ import annotations

import math

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from debridarr.infrastructure.common.rate_limiter import SlidingWindowRateLimiter

log = structlog.get_logger(__name__)

# Probes must keep answering while a client is throttled.
_EXEMPT_PATHS = frozenset({"/api/v1/healthz", "/api/v1/readyz"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """One-minute sliding window per client IP.

    Args:
        app: ASGI application.
        requests_per_minute: Max requests per IP per minute. 0 = unlimited.
        max_clients: Tracked IPs beyond this are dropped least-recently-used.
    """

    def __init__(
        self,
        app: object,
        requests_per_minute: int = 50,
        max_clients: int = 10_000,
    ) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._rpm = requests_per_minute
        self._limiter = SlidingWindowRateLimiter(
            [(requests_per_minute, 60.0)], max_keys=max_clients
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not self._limiter.enabled or request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        if not self._limiter.allow(client_ip):
            retry_after = max(1, math.ceil(self._limiter.retry_after(client_ip)))
            log.warning("api_rate_limit_exceeded", client_ip=client_ip, rpm=self._rpm)
            return JSONResponse(
                status_code=429,
                content={
                    "ok": False,
                    "error": "rate_limited",
                    "retry_after_seconds": retry_after,
                },
                headers={"Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self._rpm)
        response.headers["X-RateLimit-Remaining"] = str(self._limiter.remaining(client_ip))
        return response
