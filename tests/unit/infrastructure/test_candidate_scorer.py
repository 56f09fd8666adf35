"""Tests for CandidateScorer and StaticReliabilityTable."""

from __future__ import annotations

import pytest

from debridarr.domain.entities.candidate import Resolution, StreamCandidate
from debridarr.infrastructure.config.schema import ScoringConfig
from debridarr.infrastructure.stremio.candidate_scorer import (
    CandidateScorer,
    ScoringContext,
    StaticReliabilityTable,
)


def _cand(**kwargs) -> StreamCandidate:
    kwargs.setdefault("source", "torrentio")
    kwargs.setdefault("info_hash", "a" * 40)
    return StreamCandidate(**kwargs)


@pytest.fixture()
def scorer() -> CandidateScorer:
    return CandidateScorer(ScoringConfig())


class TestCandidateScorer:
    def test_sums_components(self, scorer: CandidateScorer) -> None:
        cand = _cand(
            resolution=Resolution.HD_1080P,
            source_quality="web-dl",
            codec="h264",
            languages=("en",),
        )
        assert scorer(cand, ScoringContext(languages=("en",))) == 45 + 8 + 2 + 30

    def test_higher_resolution_wins(self, scorer: CandidateScorer) -> None:
        ctx = ScoringContext()
        assert scorer(_cand(resolution=Resolution.UHD_4K), ctx) > scorer(
            _cand(resolution=Resolution.HD_1080P), ctx
        )

    def test_language_position(self, scorer: CandidateScorer) -> None:
        ctx = ScoringContext(languages=("fr", "en"))
        fr = scorer(_cand(languages=("fr",)), ctx)
        en = scorer(_cand(languages=("en",)), ctx)
        de = scorer(_cand(languages=("de",)), ctx)
        assert fr - de == 30
        assert en - de == 20

    def test_untagged_counts_as_english(self, scorer: CandidateScorer) -> None:
        ctx = ScoringContext(languages=("en",))
        assert scorer(_cand(), ctx) == 30

    def test_oversize_penalty(self, scorer: CandidateScorer) -> None:
        ctx = ScoringContext(max_size_bytes=1000)
        assert scorer(_cand(size_bytes=1001), ctx) == -100
        assert scorer(_cand(size_bytes=1000), ctx) == 0

    def test_conservative_mode(self, scorer: CandidateScorer) -> None:
        ctx = ScoringContext(conservative=True)
        hevc_4k = _cand(resolution=Resolution.UHD_4K, codec="h265")
        avc_1080 = _cand(resolution=Resolution.HD_1080P, codec="h264")
        assert scorer(hevc_4k, ctx) == 60 - 10 - 20
        assert scorer(avc_1080, ctx) == 45 + 6
        assert scorer(avc_1080, ctx) > scorer(hevc_4k, ctx)

    def test_season_pack_penalty(self, scorer: CandidateScorer) -> None:
        assert scorer(_cand(season_pack=True), ScoringContext()) == -3

    def test_cam_sinks(self, scorer: CandidateScorer) -> None:
        ctx = ScoringContext()
        cam = _cand(resolution=Resolution.HD_1080P, source_quality="cam")
        sd = _cand(resolution=Resolution.SD_480P)
        assert scorer(cam, ctx) < scorer(sd, ctx)

    def test_reliability_penalty_applied(self) -> None:
        table = StaticReliabilityTable({"torrentio": 7.5})
        scorer = CandidateScorer(ScoringConfig(), table)
        cand = _cand()
        assert scorer(cand, ScoringContext()) == -7.5
        assert cand.reliability_penalty == 7.5


class TestStaticReliabilityTable:
    def test_lookup_order(self) -> None:
        table = StaticReliabilityTable(
            {"b" * 40: 1.0, "cdn.example.com": 2.0, "Torrentio": 3.0}
        )
        assert table.penalty(_cand(info_hash="B" * 40)) == 1.0
        assert table.penalty(
            _cand(info_hash=None, url="https://CDN.example.com/x.mkv", source="x")
        ) == 2.0
        assert table.penalty(_cand()) == 3.0
        assert table.penalty(_cand(source="other")) == 0.0
