"""Stremio-addon HTTP source.

Queries ``{base_url}/stream/{type}/{id}.json`` and converts the returned
``streams`` array to StreamCandidates.  Transport and payload problems
are logged and degrade to an empty list.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from debridarr.domain.entities.candidate import ContentType, StreamCandidate
from debridarr.domain.ports.cache import CachePort
from debridarr.infrastructure.stremio.release_parser import parse_size_to_bytes

log = structlog.get_logger(__name__)


def _tracker_sources(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [s for s in raw if isinstance(s, str)]


def parse_stream(source: str, raw: dict[str, Any], *, pre_resolved: bool) -> StreamCandidate | None:
    """One addon stream object -> candidate (None when unusable)."""
    info_hash = raw.get("infoHash")
    url = raw.get("url")
    if not isinstance(info_hash, str):
        info_hash = None
    if not isinstance(url, str) or not url:
        url = None
    if not info_hash and not url:
        return None

    hints = raw.get("behaviorHints") or {}
    if not isinstance(hints, dict):
        hints = {}
    title = str(raw.get("title") or "")
    description = str(raw.get("description") or raw.get("name") or "")

    size = hints.get("videoSize")
    if not isinstance(size, int):
        size = parse_size_to_bytes(f"{title}\n{description}")

    file_index = raw.get("fileIdx")
    direct = bool(url) and url.lower().startswith(("http://", "https://"))
    return StreamCandidate(
        source=source,
        info_hash=info_hash,
        url=url,
        file_index=file_index if isinstance(file_index, int) else None,
        filename=str(hints.get("filename") or ""),
        title=title,
        description=description,
        size_bytes=size,
        trackers=_tracker_sources(raw.get("sources")),
        resolved=pre_resolved and direct and not info_hash,
    )


class AddonStreamSource:
    """Upstream addon queried over HTTP.

    Args:
        name: Provenance tag.
        base_url: Addon root, without trailing ``/manifest.json``.
        http_client: Shared client.
        cache: Optional result cache.
        cache_ttl: Result cache lifetime in seconds (0 disables).
        timeout: Per-request HTTP timeout; None keeps the client default.
        pre_resolved: The addon hands out direct links.
        season_pack_fallback: Retry with the bare series id when an
            episode id yields nothing.
    """

    def __init__(
        self,
        *,
        name: str,
        base_url: str,
        http_client: httpx.AsyncClient,
        cache: CachePort | None = None,
        cache_ttl: int = 3600,
        timeout: float | None = None,
        pre_resolved: bool = False,
        season_pack_fallback: bool = False,
    ) -> None:
        self._name = name
        self._base_url = base_url.rstrip("/")
        self._http = http_client
        self._cache = cache
        self._cache_ttl = cache_ttl
        self._timeout = timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT
        self._pre_resolved = pre_resolved
        self._season_pack_fallback = season_pack_fallback

    @property
    def name(self) -> str:
        return self._name

    @property
    def pre_resolved(self) -> bool:
        return self._pre_resolved

    async def _fetch(self, content_type: str, content_id: str) -> list[dict[str, Any]]:
        url = f"{self._base_url}/stream/{content_type}/{quote(content_id, safe=':')}.json"
        try:
            resp = await self._http.get(url, timeout=self._timeout)
        except httpx.HTTPError as exc:
            log.warning("source_request_failed", source=self._name, error=str(exc))
            return []

        if resp.status_code != 200:
            log.warning(
                "source_bad_status",
                source=self._name,
                status=resp.status_code,
                content_id=content_id,
            )
            return []

        try:
            payload = resp.json()
        except ValueError:
            log.warning("source_invalid_json", source=self._name, content_id=content_id)
            return []

        streams = payload.get("streams") if isinstance(payload, dict) else None
        if not isinstance(streams, list):
            return []
        return [s for s in streams if isinstance(s, dict)]

    async def _fetch_cached(self, content_type: str, content_id: str) -> list[dict[str, Any]]:
        cache_key = f"source:{self._name}:{content_type}:{content_id}"
        if self._cache is not None and self._cache_ttl > 0:
            cached = await self._cache.get(cache_key)
            if cached is not None:
                return cached

        streams = await self._fetch(content_type, content_id)
        # Empty answers are not cached; the addon may be mid-scrape.
        if streams and self._cache is not None and self._cache_ttl > 0:
            await self._cache.set(cache_key, streams, ttl=self._cache_ttl)
        return streams

    async def query(
        self, content_type: ContentType, content_id: str
    ) -> list[StreamCandidate]:
        streams = await self._fetch_cached(content_type, content_id)
        season_pack = False

        parts = content_id.split(":")
        if not streams and self._season_pack_fallback and len(parts) == 3:
            streams = await self._fetch_cached(content_type, parts[0])
            season_pack = True

        candidates: list[StreamCandidate] = []
        for raw in streams:
            cand = parse_stream(self._name, raw, pre_resolved=self._pre_resolved)
            if cand is None:
                continue
            if season_pack:
                cand.season_pack = True
                cand.season = int(parts[1]) if parts[1].isdigit() else None
            candidates.append(cand)

        log.debug(
            "source_query_complete",
            source=self._name,
            content_id=content_id,
            candidates=len(candidates),
            season_pack=season_pack,
        )
        return candidates
