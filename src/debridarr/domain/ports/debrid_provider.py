"""Port for premium download ("debrid") providers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from debridarr.domain.entities.resolution import TorrentStatus


@runtime_checkable
class DebridProviderPort(Protocol):
    """Uploads torrents, reports their status and unlocks file links.

    Permanent refusals raise ``PermanentProviderError``; network and
    API hiccups raise ``DebridApiError``.
    """

    @property
    def key(self) -> str:
        """Registry key, e.g. ``alldebrid``."""
        ...

    @property
    def short_name(self) -> str:
        """Short label for stream names, e.g. ``AD``."""
        ...

    async def upload(self, magnet: str, credential: str) -> str:
        """Submit a magnet and return the provider torrent id."""
        ...

    async def status(self, torrent_id: str, credential: str) -> TorrentStatus: ...

    async def unlock(self, link: str, credential: str) -> str:
        """Turn a hoster link into a direct download URL."""
        ...
