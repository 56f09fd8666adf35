"""Release name parser using guessit for resolution, codec and language."""

from __future__ import annotations

import re
from typing import Any

import structlog
from guessit import guessit
from guessit.api import GuessitException

from debridarr.domain.entities.candidate import Resolution, StreamCandidate

log = structlog.get_logger(__name__)

# --- Resolution mappings ---

_SCREEN_SIZE_TO_RESOLUTION: dict[str, Resolution] = {
    "4320p": Resolution.UHD_4K,
    "2160p": Resolution.UHD_4K,
    "1440p": Resolution.HD_1080P,
    "1080p": Resolution.HD_1080P,
    "1080i": Resolution.HD_1080P,
    "720p": Resolution.HD_720P,
    "576p": Resolution.SD_480P,
    "480p": Resolution.SD_480P,
    "360p": Resolution.SD_480P,
}

_RESOLUTION_FALLBACK: list[tuple[re.Pattern[str], Resolution]] = [
    (re.compile(r"(?i)\b(2160p|4k|uhd)\b"), Resolution.UHD_4K),
    (re.compile(r"(?i)\b1080[pi]\b"), Resolution.HD_1080P),
    (re.compile(r"(?i)\b720p\b"), Resolution.HD_720P),
    (re.compile(r"(?i)\b(480p|576p|sd)\b"), Resolution.SD_480P),
]

_CODEC_NAMES: dict[str, str] = {
    "H.264": "h264",
    "H.265": "h265",
    "AV1": "av1",
    "Xvid": "xvid",
    "DivX": "xvid",
    "MPEG-2": "mpeg2",
}

_CODEC_FALLBACK: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(?i)\b(x265|h\.?265|hevc)\b"), "h265"),
    (re.compile(r"(?i)\b(x264|h\.?264|avc)\b"), "h264"),
    (re.compile(r"(?i)\bav1\b"), "av1"),
]

# "1.4 GB", "700 MiB", "2,1 GB"
_SIZE_RE = re.compile(r"(?i)(\d+(?:[.,]\d+)?)\s*(TB|TiB|GB|GiB|MB|MiB|KB|KiB)\b")
_SIZE_UNITS = {"t": 1024**4, "g": 1024**3, "m": 1024**2, "k": 1024}


def parse_size_to_bytes(text: str | None) -> int:
    """First size mentioned in *text*, in bytes (0 when absent)."""
    if not text:
        return 0
    m = _SIZE_RE.search(text)
    if not m:
        return 0
    number = float(m.group(1).replace(",", "."))
    return int(number * _SIZE_UNITS[m.group(2)[0].lower()])


def _guess(text: str) -> dict[str, Any]:
    try:
        return dict(guessit(text))
    except GuessitException:
        log.debug("guessit_failed", text=text[:80])
        return {}


def _first_int(value: Any) -> int | None:
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, int) else None


def _language_code(lang_obj: object) -> str | None:
    """2-letter code from a guessit Language object.

    ``str()`` yields alpha2 when the language has one, alpha3 otherwise,
    plus an optional ``-COUNTRY`` suffix.
    """
    code = str(lang_obj).split("-", 1)[0].lower()
    if code == "mul":
        return "multi"
    return code if code and code != "und" else None


def _source_quality(guess: dict[str, Any]) -> str | None:
    source = guess.get("source")
    if isinstance(source, list):
        source = source[0] if source else None
    other = guess.get("other") or []
    if isinstance(other, str):
        other = [other]

    if source == "Blu-ray" or source == "Ultra HD Blu-ray":
        return "remux" if "Remux" in other else "bluray"
    if source in ("Web", "Ultra HD Web"):
        return "webrip" if "Rip" in other else "web-dl"
    if source in ("HDTV", "TV", "Digital TV"):
        return "hdtv"
    if source in ("DVD", "Video on Demand"):
        return "dvdrip"
    if source in ("Telesync", "HD Telesync", "Telecine"):
        return "telesync"
    if source in ("Camera", "HD Camera"):
        return "cam"
    return None


def parse_resolution(release_name: str, guess: dict[str, Any] | None = None) -> Resolution:
    """Resolution from guessit's screen_size, falling back to plain tokens."""
    guess = guess if guess is not None else _guess(release_name)
    screen_size = guess.get("screen_size")
    if isinstance(screen_size, str) and screen_size in _SCREEN_SIZE_TO_RESOLUTION:
        return _SCREEN_SIZE_TO_RESOLUTION[screen_size]
    for pattern, resolution in _RESOLUTION_FALLBACK:
        if pattern.search(release_name):
            return resolution
    return Resolution.UNKNOWN


def enrich_candidate(candidate: StreamCandidate) -> StreamCandidate:
    """Fill derived fields in place from filename, title and description.

    Fields already set by the source are left untouched.
    """
    release_name = candidate.filename or candidate.title.split("\n", 1)[0]
    text = candidate.search_text
    guess = _guess(release_name) if release_name else {}

    if candidate.resolution is Resolution.UNKNOWN:
        candidate.resolution = parse_resolution(release_name, guess)
        if candidate.resolution is Resolution.UNKNOWN:
            candidate.resolution = parse_resolution(text, {})

    if candidate.codec is None:
        codec = guess.get("video_codec")
        if isinstance(codec, str) and codec in _CODEC_NAMES:
            candidate.codec = _CODEC_NAMES[codec]
        else:
            candidate.codec = next(
                (name for pat, name in _CODEC_FALLBACK if pat.search(text)), None
            )

    if candidate.source_quality is None:
        candidate.source_quality = _source_quality(guess)

    if not candidate.languages:
        langs = guess.get("language") or []
        if not isinstance(langs, list):
            langs = [langs]
        codes = [c for c in (_language_code(lang) for lang in langs) if c]
        candidate.languages = tuple(dict.fromkeys(codes))

    if candidate.season is None:
        candidate.season = _first_int(guess.get("season"))
    if candidate.episode is None:
        candidate.episode = _first_int(guess.get("episode"))

    if candidate.size_bytes <= 0:
        candidate.size_bytes = parse_size_to_bytes(
            f"{candidate.title}\n{candidate.description}"
        )
    return candidate
