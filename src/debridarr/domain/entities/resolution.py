"""Domain entities for click-time debrid resolution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TorrentState(Enum):
    """Normalized torrent state across debrid providers."""

    QUEUED = "queued"
    DOWNLOADING = "downloading"
    READY = "ready"
    STUCK = "stuck"
    DEAD = "dead"
    ERROR = "error"

    @property
    def is_terminal_failure(self) -> bool:
        return self in (TorrentState.DEAD, TorrentState.ERROR)


@dataclass(frozen=True)
class DebridFile:
    """A file inside a torrent as reported by the provider."""

    name: str
    size: int
    link: str
    index: int | None = None


@dataclass(frozen=True)
class TorrentStatus:
    """One provider status snapshot for an uploaded torrent."""

    state: TorrentState
    files: tuple[DebridFile, ...] = ()
    downloaded: int = 0
    size: int = 0
    torrent_id: str | None = None
    message: str = ""

    @property
    def has_progress(self) -> bool:
        return self.downloaded > 0


@dataclass(frozen=True)
class PlayReference:
    """Everything carried on a click-time play link.

    The signature covers the torrent reference, file index, content id
    and target filename; credential and provider stay outside it.
    """

    info_hash: str | None = None
    magnet: str | None = None
    file_index: int | None = None
    content_id: str = ""
    filename: str = ""
    credential: str | None = None
    provider: str = "alldebrid"

    @property
    def torrent_ref(self) -> str:
        return self.info_hash or self.magnet or ""

    @property
    def cache_key(self) -> str:
        target = self.filename or (
            "" if self.file_index is None else str(self.file_index)
        )
        return f"{self.torrent_ref}:{target}"

    @property
    def season_episode(self) -> tuple[int | None, int | None]:
        """Season/episode from a ``tt123:1:5`` content id."""
        parts = self.content_id.split(":")
        if len(parts) == 3:
            try:
                return int(parts[1]), int(parts[2])
            except ValueError:
                return None, None
        return None, None

    def magnet_uri(self) -> str:
        if self.magnet:
            return self.magnet
        return f"magnet:?xt=urn:btih:{self.info_hash}"


@dataclass(frozen=True)
class ResolutionCacheEntry:
    """A resolved direct URL, valid until ``created_at + ttl``."""

    key: str
    url: str
    created_at: float
    filename: str = ""


@dataclass(frozen=True)
class ResolveOutcome:
    """Redirect target produced by the play use case."""

    url: str
    max_age: int = 0
    cached: bool = False
    shared: bool = False
    magnet_fallback: bool = False
