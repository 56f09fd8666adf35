"""Domain entities for stream candidates and selection.

Pure value objects without framework dependencies or I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Literal

ContentType = Literal["movie", "series"]


class Resolution(IntEnum):
    """Ranked resolution levels (higher value = better picture)."""

    UNKNOWN = 0
    SD_480P = 480
    HD_720P = 720
    HD_1080P = 1080
    UHD_4K = 2160

    @property
    def label(self) -> str:
        if self is Resolution.UHD_4K:
            return "4K"
        if self is Resolution.UNKNOWN:
            return "Unknown"
        return f"{self.value}p"


@dataclass
class StreamCandidate:
    """One offer of playable content from an upstream source.

    Created per request by the aggregator, enriched by the filter and
    selector stages, discarded when the request ends.
    """

    source: str
    info_hash: str | None = None
    url: str | None = None
    file_index: int | None = None
    filename: str = ""
    title: str = ""
    description: str = ""
    size_bytes: int = 0
    resolution: Resolution = Resolution.UNKNOWN
    codec: str | None = None
    source_quality: str | None = None
    languages: tuple[str, ...] = ()
    season: int | None = None
    episode: int | None = None
    season_pack: bool = False
    trackers: list[str] = field(default_factory=list)
    reliability_penalty: float = 0.0
    score: float = 0.0
    resolved: bool = False

    def __post_init__(self) -> None:
        if not self.info_hash and not self.url:
            raise ValueError("StreamCandidate needs an info hash or a URL")
        if self.info_hash:
            self.info_hash = self.info_hash.strip().lower()
        if self.resolved:
            self._check_direct(self.url)

    @staticmethod
    def _check_direct(url: str | None) -> None:
        if not url or url.lower().startswith("magnet:"):
            raise ValueError("a resolved candidate must carry a direct URL")

    @property
    def identity(self) -> str:
        """Stable identity used to tell two candidates apart."""
        if self.info_hash:
            suffix = "" if self.file_index is None else f":{self.file_index}"
            return f"{self.info_hash}{suffix}"
        return self.url or ""

    @property
    def search_text(self) -> str:
        """All free text the filters look at."""
        return " ".join(p for p in (self.filename, self.title, self.description) if p)

    def mark_resolved(self, direct_url: str) -> None:
        """Attach a direct link; magnet URIs are rejected."""
        self._check_direct(direct_url)
        self.url = direct_url
        self.resolved = True


@dataclass(frozen=True)
class StreamRequest:
    """Parsed stream request.

    Created from the URL path: ``tt1234567`` (movie) or
    ``tt1234567:1:5`` (series, season 1, episode 5).
    """

    content_id: str
    content_type: ContentType
    season: int | None = None
    episode: int | None = None

    @property
    def is_episode(self) -> bool:
        return (
            self.content_type == "series"
            and self.season is not None
            and self.episode is not None
        )

    @property
    def stream_id(self) -> str:
        """Identifier as the upstream addons expect it."""
        if self.is_episode:
            return f"{self.content_id}:{self.season}:{self.episode}"
        return self.content_id

    def next_episode(self) -> StreamRequest | None:
        if not self.is_episode:
            return None
        return StreamRequest(
            content_id=self.content_id,
            content_type=self.content_type,
            season=self.season,
            episode=(self.episode or 0) + 1,
        )


@dataclass(frozen=True)
class StreamPreferences:
    """Per-user options carried on the stream request."""

    excluded_terms: tuple[str, ...] = ()
    languages: tuple[str, ...] = ()
    max_size_bytes: int | None = None
    conservative: bool = False
    show_fallback_quality: bool = False
    show_second_opinion: bool = False
    enabled_sources: frozenset[str] | None = None  # None = all configured
    credential: str | None = None
    provider: str = "alldebrid"


@dataclass(frozen=True)
class SelectionResult:
    """Primary candidate plus the two optional secondaries.

    Both secondaries are always computed; callers decide which ones
    are visible.
    """

    primary: StreamCandidate | None = None
    fallback: StreamCandidate | None = None
    second_opinion: StreamCandidate | None = None

    def visible(
        self, *, show_fallback: bool, show_second_opinion: bool
    ) -> list[StreamCandidate]:
        if self.primary is None:
            return []
        picked = [self.primary]
        if show_fallback and self.fallback is not None:
            picked.append(self.fallback)
        if show_second_opinion and self.second_opinion is not None:
            picked.append(self.second_opinion)

        seen: set[str] = set()
        unique: list[StreamCandidate] = []
        for cand in picked:
            if cand.identity in seen:
                continue
            seen.add(cand.identity)
            unique.append(cand)
        return unique[:3]
