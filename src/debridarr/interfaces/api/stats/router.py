"""Runtime metrics endpoint."""

from __future__ import annotations

from typing import Any, cast

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from debridarr.interfaces.app_state import AppState

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/metrics")
async def metrics(request: Request) -> JSONResponse:
    """Return in-memory runtime metrics.

    Includes source query stats, resolution outcomes, the shared
    limiter/breaker/cache tables and graceful-shutdown status.
    """
    state = cast(AppState, request.app.state)

    data: dict[str, Any] = {}

    m = getattr(state, "metrics", None)
    if m is not None:
        data.update(m.snapshot())

    breaker = getattr(state, "breaker", None)
    if breaker is not None:
        data["circuit_breaker"] = breaker.snapshot()

    limiter = getattr(state, "limiter", None)
    if limiter is not None:
        data["rate_limiter"] = limiter.snapshot()

    flights = getattr(state, "flights", None)
    if flights is not None:
        data["in_flight"] = flights.snapshot()

    resolutions = getattr(state, "resolution_cache", None)
    if resolutions is not None:
        data["resolution_cache"] = {"entries": len(resolutions)}

    gs = getattr(state, "graceful_shutdown", None)
    if gs is not None:
        data["shutdown"] = gs.snapshot()

    return JSONResponse(content=data)
