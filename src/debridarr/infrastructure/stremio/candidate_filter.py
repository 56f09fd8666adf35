"""Episode matching and exclusion-term filtering for candidates.

Both filters are total: they never raise and always return a list.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import structlog

from debridarr.domain.entities.candidate import StreamCandidate

log = structlog.get_logger(__name__)

_SEP = r"[\s._\-]*"
# Season-pack markers following a bare season token.
_PACK_WORDS = r"(?:complete|pack|collection|full[\s._\-]*season)"


def episode_patterns(season: int, episode: int) -> list[re.Pattern[str]]:
    """Recognized spellings of one episode, plus its season pack.

    Numbers are bounded on both sides, so ``E1`` never matches ``E10``.
    """
    s, e = season, episode
    return [
        # S01E02, s1e2, S01 E02, S01.E02
        re.compile(rf"(?i)(?<![a-z0-9])s0*{s}{_SEP}e0*{e}(?!\d)"),
        # Season 1 Episode 2
        re.compile(rf"(?i)season{_SEP}0*{s}{_SEP}episode{_SEP}0*{e}(?!\d)"),
        # 1x02
        re.compile(rf"(?i)(?<![a-z0-9])0*{s}x0*{e}(?!\d)"),
        # S01 Complete, Season 1 Pack
        re.compile(
            rf"(?i)(?:(?<![a-z0-9])s0*{s}|season{_SEP}0*{s})(?!\d)"
            rf"(?!{_SEP}e\d).*?\b{_PACK_WORDS}\b"
        ),
    ]


def matches_episode(candidate: StreamCandidate, season: int, episode: int) -> bool:
    if candidate.season_pack and candidate.season in (None, season):
        return True
    if candidate.season == season and candidate.episode == episode:
        return True
    text = candidate.search_text
    return any(p.search(text) for p in episode_patterns(season, episode))


def filter_by_episode(
    candidates: list[StreamCandidate], season: int | None, episode: int | None
) -> list[StreamCandidate]:
    """Keep candidates for the requested episode.

    If nothing matches, the unfiltered list is returned: a result the
    user can inspect beats an empty one.
    """
    if season is None or episode is None or not candidates:
        return candidates

    kept = [c for c in candidates if matches_episode(c, season, episode)]
    if not kept:
        log.info(
            "episode_filter_fallback",
            season=season,
            episode=episode,
            candidates=len(candidates),
        )
        return candidates
    return kept


def filter_excluded(
    candidates: list[StreamCandidate], terms: Iterable[str]
) -> list[StreamCandidate]:
    """Drop candidates whose text contains any term (case-insensitive)."""
    needles = [t.strip().lower() for t in terms if t and t.strip()]
    if not needles:
        return candidates
    return [
        c
        for c in candidates
        if not any(n in c.search_text.lower() for n in needles)
    ]

