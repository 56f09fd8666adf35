"""Stremio addon API endpoints (manifest, stream)."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from debridarr.domain.entities.candidate import (
    ContentType,
    StreamPreferences,
    StreamRequest,
)
from debridarr.infrastructure.stremio.stream_formatter import PLACEHOLDER_STREAM
from debridarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/stremio", tags=["stremio"])

_ADDON_ID = "community.debridarr"
_ADDON_VERSION = "0.1.0"

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "*",
}

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})

# Short credential parameters: ``?ad=<key>`` / ``?rd=<key>``.
_PROVIDER_SHORTCUTS = {"ad": "alldebrid", "rd": "realdebrid"}

_IMDB_ID_RE = re.compile(r"^tt\d+$")


def _build_manifest(addon_name: str) -> dict[str, Any]:
    return {
        "id": _ADDON_ID,
        "version": _ADDON_VERSION,
        "name": addon_name,
        "description": "Best-quality torrent streams, resolved through your debrid service on play",
        "types": ["movie", "series"],
        "catalogs": [],
        "resources": ["stream"],
        "idPrefixes": ["tt"],
        "behaviorHints": {
            "adult": False,
            "configurable": True,
        },
    }


def _parse_stream_id(content_type: str, raw_id: str) -> StreamRequest | None:
    """Parse a Stremio stream id.

    Movies: "tt1234567"
    Series: "tt1234567:1:5" (season 1, episode 5)
    """
    if content_type not in ("movie", "series"):
        return None
    ct = cast(ContentType, content_type)

    parts = raw_id.split(":")
    if not _IMDB_ID_RE.match(parts[0]):
        return None

    if len(parts) == 3:
        if ct != "series":
            return None
        try:
            season = int(parts[1])
            episode = int(parts[2])
        except ValueError:
            return None
        if season < 0 or episode < 1:
            return None
        return StreamRequest(content_id=parts[0], content_type=ct, season=season, episode=episode)

    if len(parts) != 1:
        return None
    return StreamRequest(content_id=parts[0], content_type=ct)


def _split_list(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(p.strip() for p in raw.split(",") if p.strip())


def _flag(params: Mapping[str, str], *names: str) -> bool:
    return any(params.get(n, "").strip().lower() in _TRUE_VALUES for n in names)


def _parse_max_size(raw: str | None) -> int | None:
    """``max_size`` is given in GB; invalid or non-positive means no ceiling."""
    if not raw:
        return None
    try:
        gb = float(raw)
    except ValueError:
        return None
    if gb <= 0:
        return None
    return int(gb * 1024**3)


def _parse_preferences(
    params: Mapping[str, str],
    *,
    default_provider: str,
    default_languages: list[str],
) -> StreamPreferences:
    credential = params.get("key") or None
    provider = params.get("provider") or default_provider
    for short, name in _PROVIDER_SHORTCUTS.items():
        if not credential and params.get(short):
            credential = params[short]
            provider = name

    languages = tuple(lang.lower() for lang in _split_list(params.get("lang_prio")))
    sources = _split_list(params.get("sources"))

    return StreamPreferences(
        excluded_terms=_split_list(params.get("blacklist")),
        languages=languages or tuple(default_languages),
        max_size_bytes=_parse_max_size(params.get("max_size")),
        conservative=_flag(params, "conservative"),
        show_fallback_quality=_flag(params, "fallback", "additionalstream"),
        show_second_opinion=_flag(params, "second_opinion"),
        enabled_sources=frozenset(s.lower() for s in sources) if sources else None,
        credential=credential,
        provider=provider.strip().lower(),
    )


def _public_base_url(request: Request, configured: str | None) -> str:
    if configured:
        return configured.rstrip("/")
    return str(request.base_url).rstrip("/")


@router.get("/manifest.json")
async def stremio_manifest(request: Request) -> JSONResponse:
    """Serve the Stremio addon manifest."""
    state = cast(AppState, request.app.state)
    return JSONResponse(
        content=_build_manifest(state.config.stremio.addon_name),
        headers=_CORS_HEADERS,
    )


@router.get("/stream/{content_type}/{stream_id}.json")
async def stremio_stream(
    request: Request,
    content_type: str,
    stream_id: str,
) -> JSONResponse:
    """List the best streams for a movie or episode.

    Invalid ids answer with an empty list.  An id with no usable
    candidates, or a failure while building the list, answers with a
    single placeholder stream.
    """
    state = cast(AppState, request.app.state)

    parsed = _parse_stream_id(content_type, stream_id)
    if parsed is None:
        log.info("stremio_invalid_stream_id", content_type=content_type, stream_id=stream_id)
        return JSONResponse(content={"streams": []}, headers=_CORS_HEADERS)

    prefs = _parse_preferences(
        request.query_params,
        default_provider=state.config.debrid.default_provider,
        default_languages=state.config.stremio.default_languages,
    )

    log.info(
        "stremio_stream_request",
        content_id=parsed.content_id,
        content_type=parsed.content_type,
        season=parsed.season,
        episode=parsed.episode,
        provider=prefs.provider,
        has_credential=prefs.credential is not None,
    )

    try:
        streams = await state.stream_list_uc.execute(
            parsed,
            prefs,
            base_url=_public_base_url(request, state.config.stremio.public_base_url),
        )
    except Exception:
        log.warning(
            "stremio_stream_failed",
            content_id=parsed.stream_id,
            content_type=parsed.content_type,
            exc_info=True,
        )
        return JSONResponse(
            content={"streams": [dict(PLACEHOLDER_STREAM)]}, headers=_CORS_HEADERS
        )

    log.info(
        "stremio_stream_response",
        content_id=parsed.stream_id,
        streams_returned=len(streams),
    )
    return JSONResponse(content={"streams": streams}, headers=_CORS_HEADERS)
