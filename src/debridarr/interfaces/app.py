"""FastAPI application factory (create_app)."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from urllib.parse import parse_qsl, urlencode

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from debridarr.infrastructure.config import AppConfig
from debridarr.infrastructure.graceful_shutdown import GracefulShutdown
from debridarr.interfaces.api.middleware import RateLimitMiddleware
from debridarr.interfaces.app_state import AppState
from debridarr.interfaces.composition import lifespan

log = structlog.get_logger(__name__)

# Query parameters that carry debrid credentials.
_SECRET_PARAMS = frozenset({"key", "ad", "rd", "apikey"})


def _redacted_query(query: str) -> str:
    if not query:
        return ""
    pairs = parse_qsl(query, keep_blank_values=True)
    return urlencode([(k, "***" if k in _SECRET_PARAMS and v else v) for k, v in pairs])


def create_app(config: AppConfig) -> FastAPI:
    """Create FastAPI app: configuration only, no resource initialization.

    Resources (HTTP client, caches, providers) are created in lifespan().
    """
    app = FastAPI(
        title="Debridarr",
        description="Stremio addon resolving torrents through debrid services at play time",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config
    app.state.graceful_shutdown = GracefulShutdown()

    # API rate limiting (per-IP sliding window)
    if config.api_rate_limit_rpm > 0:
        app.add_middleware(
            RateLimitMiddleware, requests_per_minute=config.api_rate_limit_rpm
        )

    from debridarr.interfaces.api.play.router import router as play_router
    from debridarr.interfaces.api.stats.router import router as stats_router
    from debridarr.interfaces.api.stremio.router import router as stremio_router

    app.include_router(stremio_router, prefix="/api/v1")
    app.include_router(play_router, prefix="/api/v1")
    app.include_router(stats_router, prefix="/api/v1")

    @app.get("/api/v1/healthz")
    async def healthz() -> dict[str, str | list[str]]:
        """Liveness probe: 200 as long as the process is running."""
        state = app.state
        aggregator = getattr(state, "aggregator", None)
        providers = getattr(state, "providers", None)
        return {
            "status": "ok",
            "sources": aggregator.source_names if aggregator else [],
            "providers": providers.keys if providers else [],
        }

    @app.get("/api/v1/readyz")
    async def readyz() -> Response:
        """Readiness probe: 200 after startup complete, 503 otherwise."""
        gs: GracefulShutdown = app.state.graceful_shutdown
        if gs.is_ready:
            return JSONResponse({"status": "ready"}, status_code=200)
        return JSONResponse({"status": "not_ready"}, status_code=503)

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ):
        gs: GracefulShutdown = app.state.graceful_shutdown
        start = time.perf_counter()
        status_code = 500
        with gs.track():
            try:
                response = await call_next(request)
                status_code = response.status_code
                return response
            finally:
                log.info(
                    "http_request",
                    method=request.method,
                    path=request.url.path,
                    query=_redacted_query(request.url.query),
                    status_code=status_code,
                    duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
                    client_host=(request.client.host if request.client else None),
                )

    return app
