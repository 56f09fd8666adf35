"""Choosing the file to play inside a (possibly multi-file) torrent."""

from __future__ import annotations

import re
from collections.abc import Sequence

from debridarr.domain.entities.resolution import DebridFile

VIDEO_EXTENSIONS = (
    ".mkv",
    ".mp4",
    ".m4v",
    ".avi",
    ".mov",
    ".wmv",
    ".webm",
    ".ts",
    ".m2ts",
)
MIN_VIDEO_SIZE = 50 * 1024 * 1024

_EXTRA_RE = re.compile(r"(?i)(?<![a-z])(sample|trailer|extras?|featurette|bonus)(?![a-z])")
_BRACKETS_RE = re.compile(r"\[[^\]]*\]|\{[^}]*\}")
_SEPARATORS_RE = re.compile(r"[\s._\-()]+")


def normalize_filename(name: str) -> str:
    """Lowercase basename without extension, bracketed tags or separators."""
    base = name.rsplit("/", 1)[-1].lower()
    for ext in VIDEO_EXTENSIONS:
        if base.endswith(ext):
            base = base[: -len(ext)]
            break
    base = _BRACKETS_RE.sub(" ", base)
    return _SEPARATORS_RE.sub("", base)


def is_playable(f: DebridFile, *, min_size: int = MIN_VIDEO_SIZE) -> bool:
    name = f.name.lower()
    if not name.endswith(VIDEO_EXTENSIONS):
        return False
    if f.size < min_size:
        return False
    return not _EXTRA_RE.search(name)


def _episode_re(season: int, episode: int) -> re.Pattern[str]:
    return re.compile(
        rf"(?i)(?:(?<![a-z0-9])s0*{season}[\s._\-]*e0*{episode}(?!\d)"
        rf"|(?<![a-z0-9])0*{season}x0*{episode}(?!\d))"
    )


def select_file(
    files: Sequence[DebridFile],
    *,
    target_filename: str | None = None,
    season: int | None = None,
    episode: int | None = None,
    file_index: int | None = None,
    min_size: int = MIN_VIDEO_SIZE,
) -> DebridFile | None:
    """Pick the file to stream, or None when nothing qualifies yet.

    Order: exact normalized filename, substring filename, season/episode
    pattern, numeric file index, then the largest qualifying file.
    """
    playable = [f for f in files if is_playable(f, min_size=min_size)]
    if not playable:
        return None

    if target_filename:
        wanted = normalize_filename(target_filename)
        if wanted:
            for f in playable:
                if normalize_filename(f.name) == wanted:
                    return f
            for f in playable:
                have = normalize_filename(f.name)
                if have and (wanted in have or have in wanted):
                    return f

    if season is not None and episode is not None:
        pattern = _episode_re(season, episode)
        for f in playable:
            if pattern.search(f.name):
                return f

    if file_index is not None:
        for f in playable:
            if f.index == file_index:
                return f

    return max(playable, key=lambda f: f.size)
