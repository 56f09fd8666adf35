"""AllDebrid provider (API v4).

Every response is an envelope::

    {"status": "success", "data": {...}}
    {"status": "error", "error": {"code": "AUTH_BAD_APIKEY", "message": "..."}}

Endpoints used:
    GET /magnet/upload?magnets[]=...   -> data.magnets[0].id
    GET /magnet/status?id=...          -> data.magnets {status, statusCode, links}
    GET /link/unlock?link=...          -> data.link
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from debridarr.domain.entities.errors import DebridApiError, PermanentProviderError
from debridarr.domain.entities.resolution import DebridFile, TorrentState, TorrentStatus
from debridarr.infrastructure.debrid.base import HttpDebridProvider

log = structlog.get_logger(__name__)

# Refusals that no amount of retrying will fix.
PERMANENT_UPLOAD_CODES = frozenset(
    {
        "MAGNET_MUST_BE_PREMIUM",
        "AUTH_BLOCKED",
        "AUTH_BAD_APIKEY",
        "AUTH_USER_BANNED",
        "NO_SERVER",
    }
)
PERMANENT_STATUS_CODES = PERMANENT_UPLOAD_CODES | {"MAGNET_TOO_MANY"}

_DEAD_STATUS_CODES = frozenset({7, 10, 11, 15})


def _state_from_code(code: int) -> TorrentState:
    if code == 0:
        return TorrentState.QUEUED
    if code in (1, 2, 3):
        return TorrentState.DOWNLOADING
    if code == 4:
        return TorrentState.READY
    if code in _DEAD_STATUS_CODES:
        return TorrentState.DEAD
    return TorrentState.ERROR


def _flatten_links(links: list[Any]) -> tuple[DebridFile, ...]:
    files: list[DebridFile] = []
    for i, entry in enumerate(links):
        if not isinstance(entry, dict) or not entry.get("link"):
            continue
        files.append(
            DebridFile(
                name=str(entry.get("filename") or ""),
                size=int(entry.get("size") or 0),
                link=str(entry["link"]),
                index=i,
            )
        )
    return tuple(files)


class AllDebridProvider(HttpDebridProvider):
    key = "alldebrid"
    short_name = "AD"
    api_base = "https://api.alldebrid.com/v4"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        agent: str = "debridarr",
        timeout: float = 15.0,
    ) -> None:
        super().__init__(http_client, timeout=timeout)
        self._agent = agent

    def _unwrap(self, payload: Any, permanent: frozenset[str]) -> dict[str, Any]:
        if not isinstance(payload, dict):
            raise DebridApiError("alldebrid returned a non-object payload", code="bad_payload")
        if payload.get("status") == "success":
            data = payload.get("data")
            return data if isinstance(data, dict) else {}

        error = payload.get("error") or {}
        code = str(error.get("code") or "UNKNOWN")
        message = str(error.get("message") or code)
        if code in permanent:
            raise PermanentProviderError(message, code=code)
        raise DebridApiError(message, code=code)

    async def upload(self, magnet: str, credential: str) -> str:
        _, payload = await self._request(
            "GET",
            "/magnet/upload",
            credential,
            params={"agent": self._agent, "magnets[]": magnet},
        )
        data = self._unwrap(payload, PERMANENT_UPLOAD_CODES)
        magnets = data.get("magnets") or []
        first = magnets[0] if isinstance(magnets, list) and magnets else {}
        if isinstance(first, dict) and first.get("error"):
            # per-magnet errors use the same envelope shape
            self._unwrap({"status": "error", "error": first["error"]}, PERMANENT_UPLOAD_CODES)
        torrent_id = first.get("id") if isinstance(first, dict) else None
        if torrent_id is None:
            raise DebridApiError("alldebrid upload returned no magnet id", code="bad_payload")
        return str(torrent_id)

    async def status(self, torrent_id: str, credential: str) -> TorrentStatus:
        _, payload = await self._request(
            "GET",
            "/magnet/status",
            credential,
            params={"agent": self._agent, "id": torrent_id},
        )
        data = self._unwrap(payload, PERMANENT_STATUS_CODES)
        magnet = data.get("magnets")
        if isinstance(magnet, list):
            items = [m for m in magnet if isinstance(m, dict)]
            magnet = next(
                (m for m in items if str(m.get("id")) == str(torrent_id)),
                items[0] if items else None,
            )
        if not isinstance(magnet, dict):
            raise DebridApiError("alldebrid status returned no magnet", code="bad_payload")

        code = magnet.get("statusCode")
        state = _state_from_code(code) if isinstance(code, int) else TorrentState.QUEUED
        return TorrentStatus(
            state=state,
            files=_flatten_links(magnet.get("links") or []),
            downloaded=int(magnet.get("downloaded") or 0),
            size=int(magnet.get("size") or 0),
            torrent_id=str(torrent_id),
            message=str(magnet.get("status") or ""),
        )

    async def unlock(self, link: str, credential: str) -> str:
        _, payload = await self._request(
            "GET",
            "/link/unlock",
            credential,
            params={"agent": self._agent, "link": link},
        )
        data = self._unwrap(payload, PERMANENT_UPLOAD_CODES)
        direct = data.get("link")
        if not isinstance(direct, str) or not direct:
            raise DebridApiError("alldebrid unlock returned no link", code="bad_payload")
        return direct
