"""Click-time play endpoint: signed link in, 302 to a direct URL out."""

from __future__ import annotations

import math
from typing import Any, cast

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from debridarr.domain.entities.errors import (
    PermanentProviderError,
    RateLimited,
    ResolveError,
    TransientProviderError,
)
from debridarr.domain.entities.resolution import PlayReference
from debridarr.infrastructure.security.play_signer import credential_fingerprint
from debridarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["play"])

_STREAM_HEADERS = {
    "Accept-Ranges": "bytes",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Range, Content-Range, Accept-Ranges",
}


def _error_body(exc: ResolveError) -> dict[str, Any]:
    body: dict[str, Any] = {"ok": False, "error": exc.code}
    if isinstance(exc, PermanentProviderError):
        body["permanent"] = True
    elif isinstance(exc, TransientProviderError | RateLimited):
        body["retry"] = True
    message = str(exc)
    if message and message != exc.code:
        body["reason"] = message
    return body


def _error_response(exc: ResolveError) -> JSONResponse:
    headers = {"Access-Control-Allow-Origin": "*"}
    if isinstance(exc, RateLimited):
        headers["Retry-After"] = str(max(1, math.ceil(exc.retry_after)))
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc),
        headers=headers,
    )


@router.get("/play")
async def play(
    request: Request,
    ih: str | None = Query(default=None, description="Torrent info-hash."),
    magnet: str | None = Query(default=None, description="Magnet URI (when no info-hash)."),
    idx: int | None = Query(default=None, ge=0, description="File index inside the torrent."),
    cid: str = Query(default="", description="Content id, e.g. tt1234567:1:5."),
    fn: str = Query(default="", description="Target filename."),
    key: str | None = Query(default=None, description="Debrid credential."),
    provider: str | None = Query(default=None, description="Debrid provider key."),
    sig: str | None = Query(default=None, description="Link signature."),
) -> Response:
    """Resolve a signed play link and redirect to the stream.

    The redirect's ``Cache-Control`` max-age is the remaining lifetime of
    the cached resolution, so players may reuse it until it expires.
    """
    state = cast(AppState, request.app.state)
    ref = PlayReference(
        info_hash=ih.lower() if ih else None,
        magnet=magnet or None,
        file_index=idx,
        content_id=cid,
        filename=fn,
        credential=key or None,
        provider=(provider or state.config.debrid.default_provider).lower(),
    )

    try:
        outcome = await state.play_resolve_uc.execute(ref, sig)
    except ResolveError as exc:
        event = "play_rejected" if exc.status_code < 500 else "play_failed"
        log.warning(
            event,
            kind=exc.kind,
            code=exc.code,
            status_code=exc.status_code,
            reason=str(exc),
            content_id=cid or None,
            provider=ref.provider,
            credential_fp=credential_fingerprint(ref.credential),
        )
        return _error_response(exc)
    except Exception:
        log.exception(
            "play_internal_error",
            content_id=cid or None,
            provider=ref.provider,
            credential_fp=credential_fingerprint(ref.credential),
        )
        return JSONResponse(
            status_code=500,
            content={"ok": False, "error": "internal"},
            headers={"Access-Control-Allow-Origin": "*"},
        )

    log.info(
        "play_redirect",
        content_id=cid or None,
        provider=ref.provider,
        cached=outcome.cached,
        shared=outcome.shared,
        magnet_fallback=outcome.magnet_fallback,
        max_age=outcome.max_age,
    )
    return RedirectResponse(
        url=outcome.url,
        status_code=302,
        headers={
            "Cache-Control": f"public, max-age={outcome.max_age}",
            **_STREAM_HEADERS,
        },
    )
