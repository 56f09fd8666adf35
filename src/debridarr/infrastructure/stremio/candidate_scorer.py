"""Candidate scoring for the selector.

All weights come from ScoringConfig. Score formula:

    resolution + source quality + codec + language
    - oversize penalty - season-pack penalty - reliability penalty

Higher resolution, matching language preference and lower reliability
penalty always score higher, everything else being equal.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urlparse

from debridarr.domain.entities.candidate import Resolution, StreamCandidate
from debridarr.domain.ports.reliability import ReliabilityLookupPort
from debridarr.infrastructure.config.schema import ScoringConfig


@dataclass(frozen=True)
class ScoringContext:
    """Per-request inputs of the score function."""

    languages: tuple[str, ...] = ()
    max_size_bytes: int | None = None
    conservative: bool = False


ScoreFn = Callable[[StreamCandidate, ScoringContext], float]


class StaticReliabilityTable:
    """Reliability penalties from configuration, keyed by host or info hash."""

    def __init__(self, penalties: dict[str, float]) -> None:
        self._penalties = {k.lower(): v for k, v in penalties.items()}

    def penalty(self, candidate: StreamCandidate) -> float:
        if candidate.info_hash and candidate.info_hash in self._penalties:
            return self._penalties[candidate.info_hash]
        if candidate.url:
            host = (urlparse(candidate.url).hostname or "").lower()
            if host in self._penalties:
                return self._penalties[host]
        return self._penalties.get(candidate.source.lower(), 0.0)


class CandidateScorer:
    """Default score function (callable as ``scorer(candidate, context)``)."""

    def __init__(
        self,
        config: ScoringConfig,
        reliability: ReliabilityLookupPort | None = None,
    ) -> None:
        self._cfg = config
        self._reliability = reliability
        self._resolution_points = {
            int(k): v for k, v in config.resolution_points.items()
        }

    def _language_points(self, candidate: StreamCandidate, prefs: tuple[str, ...]) -> float:
        points = self._cfg.language_points
        for pos, code in enumerate(prefs):
            if code in candidate.languages or (
                code == "en" and not candidate.languages
            ):
                return points[pos] if pos < len(points) else 0.0
        return 0.0

    def _codec_points(self, candidate: StreamCandidate, conservative: bool) -> float:
        if candidate.codec is None:
            return 0.0
        table = (
            self._cfg.conservative_codec_points
            if conservative
            else self._cfg.codec_points
        )
        return table.get(candidate.codec, 0.0)

    def __call__(self, candidate: StreamCandidate, context: ScoringContext) -> float:
        score = self._resolution_points.get(int(candidate.resolution), 0.0)
        if candidate.source_quality:
            score += self._cfg.source_quality_points.get(candidate.source_quality, 0.0)
        score += self._codec_points(candidate, context.conservative)
        score += self._language_points(candidate, context.languages)

        if context.conservative and candidate.resolution is Resolution.UHD_4K:
            score -= self._cfg.conservative_4k_penalty
        if context.max_size_bytes and candidate.size_bytes > context.max_size_bytes:
            score -= self._cfg.oversize_penalty
        if candidate.season_pack:
            score -= self._cfg.season_pack_penalty

        if self._reliability is not None:
            candidate.reliability_penalty = self._reliability.penalty(candidate)
        score -= max(0.0, candidate.reliability_penalty)
        return score
