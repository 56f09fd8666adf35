"""Ranking and primary/secondary selection of candidates."""

from __future__ import annotations

from debridarr.domain.entities.candidate import (
    Resolution,
    SelectionResult,
    StreamCandidate,
)
from debridarr.infrastructure.stremio.candidate_scorer import ScoreFn, ScoringContext

# One step down the quality ladder.
_LADDER: dict[Resolution, Resolution] = {
    Resolution.UHD_4K: Resolution.HD_1080P,
    Resolution.HD_1080P: Resolution.HD_720P,
    Resolution.HD_720P: Resolution.SD_480P,
}


def rank_candidates(
    candidates: list[StreamCandidate],
    score_fn: ScoreFn,
    context: ScoringContext,
) -> list[StreamCandidate]:
    """Score every candidate and return them best first.

    Ties break by provenance (pre-resolved first), then smaller size,
    then original order.
    """
    for cand in candidates:
        cand.score = score_fn(cand, context)
    order = {id(c): i for i, c in enumerate(candidates)}
    return sorted(
        candidates,
        key=lambda c: (
            -c.score,
            0 if c.resolved else 1,
            c.size_bytes,
            order[id(c)],
        ),
    )


def _fallback_for(
    ranked: list[StreamCandidate], primary: StreamCandidate
) -> StreamCandidate | None:
    target = _LADDER.get(primary.resolution)
    if target is None:
        return None

    others = [c for c in ranked if c.identity != primary.identity]
    for res in (target, _LADDER.get(target)):
        if res is None:
            break
        for cand in others:
            if cand.resolution is res:
                return cand
    return None


def select_candidates(ranked: list[StreamCandidate]) -> SelectionResult:
    """Pick primary, fallback-quality and second-opinion candidates.

    *ranked* must already be sorted best first.  The fallback sits one
    step down the 4K → 1080p → 720p → 480p ladder (two steps if nothing
    sits exactly one step down); the second opinion is the best
    candidate that is neither of the other two.
    """
    if not ranked:
        return SelectionResult()

    primary = ranked[0]
    fallback = _fallback_for(ranked, primary)
    taken = {primary.identity}
    if fallback is not None:
        taken.add(fallback.identity)
    second = next((c for c in ranked[1:] if c.identity not in taken), None)
    return SelectionResult(primary=primary, fallback=fallback, second_opinion=second)
