"""Real-Debrid provider (REST API 1.0).

Errors come back as 4xx with ``{"error": "bad_token", "error_code": 8}``.
Files must be selected before Real-Debrid starts a torrent, which
happens automatically the first time a status shows
``waiting_files_selection``.
"""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Any

import structlog

from debridarr.domain.entities.errors import DebridApiError, PermanentProviderError
from debridarr.domain.entities.resolution import DebridFile, TorrentState, TorrentStatus
from debridarr.infrastructure.debrid.base import HttpDebridProvider

log = structlog.get_logger(__name__)

# error_code -> name; bad token, permission denied, account locked,
# account not activated, premium-only, IP not allowed
PERMANENT_ERROR_CODES: dict[int, str] = {
    8: "bad_token",
    9: "permission_denied",
    14: "account_locked",
    15: "account_not_activated",
    20: "hoster_not_free",
    22: "ip_not_allowed",
}

_STATES: dict[str, TorrentState] = {
    "magnet_conversion": TorrentState.QUEUED,
    "waiting_files_selection": TorrentState.QUEUED,
    "queued": TorrentState.QUEUED,
    "downloading": TorrentState.DOWNLOADING,
    "compressing": TorrentState.DOWNLOADING,
    "uploading": TorrentState.DOWNLOADING,
    "downloaded": TorrentState.READY,
    "magnet_error": TorrentState.ERROR,
    "error": TorrentState.ERROR,
    "virus": TorrentState.ERROR,
    "dead": TorrentState.DEAD,
}


def _raise_for_error(status_code: int, payload: Any) -> None:
    if status_code < 400:
        return
    body = payload if isinstance(payload, dict) else {}
    error_code = body.get("error_code")
    name = str(body.get("error") or f"http_{status_code}")
    if error_code in PERMANENT_ERROR_CODES:
        raise PermanentProviderError(name, code=PERMANENT_ERROR_CODES[error_code])
    if status_code in (401, 403):
        raise PermanentProviderError(name, code=name)
    raise DebridApiError(f"realdebrid error: {name}", code=name)


def _ready_files(info: dict[str, Any]) -> tuple[DebridFile, ...]:
    links = [link for link in info.get("links") or [] if isinstance(link, str)]
    selected = [
        f for f in info.get("files") or [] if isinstance(f, dict) and f.get("selected")
    ]
    files: list[DebridFile] = []
    # links line up with the selected files, in order
    for entry, link in zip(selected, links):
        file_id = entry.get("id")
        files.append(
            DebridFile(
                name=PurePosixPath(str(entry.get("path") or "")).name,
                size=int(entry.get("bytes") or 0),
                link=link,
                index=file_id - 1 if isinstance(file_id, int) else None,
            )
        )
    return tuple(files)


class RealDebridProvider(HttpDebridProvider):
    key = "realdebrid"
    short_name = "RD"
    api_base = "https://api.real-debrid.com/rest/1.0"

    async def upload(self, magnet: str, credential: str) -> str:
        status_code, payload = await self._request(
            "POST", "/torrents/addMagnet", credential, data={"magnet": magnet}
        )
        _raise_for_error(status_code, payload)
        torrent_id = payload.get("id") if isinstance(payload, dict) else None
        if not torrent_id:
            raise DebridApiError("realdebrid addMagnet returned no id", code="bad_payload")
        return str(torrent_id)

    async def _select_all(self, torrent_id: str, credential: str) -> None:
        status_code, payload = await self._request(
            "POST",
            f"/torrents/selectFiles/{torrent_id}",
            credential,
            data={"files": "all"},
        )
        _raise_for_error(status_code, payload)
        log.debug("realdebrid_files_selected", torrent_id=torrent_id)

    async def status(self, torrent_id: str, credential: str) -> TorrentStatus:
        status_code, info = await self._request(
            "GET", f"/torrents/info/{torrent_id}", credential
        )
        _raise_for_error(status_code, info)
        if not isinstance(info, dict):
            raise DebridApiError("realdebrid info returned a non-object", code="bad_payload")

        raw_status = str(info.get("status") or "")
        if raw_status == "waiting_files_selection":
            await self._select_all(torrent_id, credential)

        state = _STATES.get(raw_status, TorrentState.QUEUED)
        size = int(info.get("bytes") or 0)
        progress = float(info.get("progress") or 0)
        return TorrentStatus(
            state=state,
            files=_ready_files(info) if state is TorrentState.READY else (),
            downloaded=int(size * progress / 100),
            size=size,
            torrent_id=torrent_id,
            message=raw_status,
        )

    async def unlock(self, link: str, credential: str) -> str:
        status_code, payload = await self._request(
            "POST", "/unrestrict/link", credential, data={"link": link}
        )
        _raise_for_error(status_code, payload)
        direct = payload.get("download") if isinstance(payload, dict) else None
        if not isinstance(direct, str) or not direct:
            raise DebridApiError("realdebrid unrestrict returned no link", code="bad_payload")
        return direct
