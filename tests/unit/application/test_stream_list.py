"""Tests for StreamListUseCase."""

from __future__ import annotations

import asyncio

import pytest

from debridarr.application.use_cases.stream_list import StreamListUseCase
from debridarr.domain.entities.candidate import (
    Resolution,
    StreamCandidate,
    StreamPreferences,
    StreamRequest,
)
from debridarr.infrastructure.config.schema import ScoringConfig, StremioConfig
from debridarr.infrastructure.security.play_signer import PlayLinkSigner
from debridarr.infrastructure.stremio.candidate_scorer import CandidateScorer
from debridarr.infrastructure.stremio.release_parser import enrich_candidate
from debridarr.infrastructure.stremio.stream_formatter import PLACEHOLDER_STREAM

_GB = 1024**3

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _FakeAggregator:
    def __init__(self, by_id: dict[str, list[StreamCandidate]] | None = None) -> None:
        self._by_id = by_id or {}
        self.calls: list[tuple[str, str, object]] = []
        self.gate: asyncio.Event | None = None

    async def query_all(self, content_type, content_id, enabled=None):
        self.calls.append((content_type, content_id, enabled))
        if self.gate is not None and self.calls[-1] != self.calls[0]:
            await self.gate.wait()
        return list(self._by_id.get(content_id, []))


def _make_candidate(n: int, res: Resolution, name: str = "", **kwargs) -> StreamCandidate:
    kwargs.setdefault("source", "torrentio")
    kwargs.setdefault("size_bytes", _GB)
    return StreamCandidate(
        info_hash=f"{n:040d}", resolution=res, filename=name, **kwargs
    )


def _make_use_case(
    aggregator: _FakeAggregator,
    signer: PlayLinkSigner,
    *,
    preload: bool = False,
    enrich=lambda c: c,
) -> StreamListUseCase:
    return StreamListUseCase(
        aggregator=aggregator,
        score_fn=CandidateScorer(ScoringConfig()),
        enrich_fn=enrich,
        signer=signer,
        config=StremioConfig(preload_next_episode=preload),
        provider_labels={"alldebrid": "AD", "realdebrid": "RD"},
    )


_MOVIE = StreamRequest(content_id="tt0111161", content_type="movie")
_EPISODE = StreamRequest(content_id="tt0944947", content_type="series", season=1, episode=5)
_BASE = "https://addon.example.com"


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


class TestSelect:
    @pytest.mark.asyncio()
    async def test_episode_filter_applied(self, signer: PlayLinkSigner) -> None:
        right = _make_candidate(1, Resolution.HD_720P, "Show.S01E05.720p.mkv")
        wrong = _make_candidate(2, Resolution.UHD_4K, "Show.S01E06.2160p.mkv")
        agg = _FakeAggregator({"tt0944947:1:5": [wrong, right]})
        selection = await _make_use_case(agg, signer).select(_EPISODE, StreamPreferences())
        assert selection.primary is right
        assert selection.second_opinion is None

    @pytest.mark.asyncio()
    async def test_exclusions_applied(self, signer: PlayLinkSigner) -> None:
        cam = _make_candidate(1, Resolution.HD_1080P, "Movie.2019.1080p.HDCAM.mkv")
        ok = _make_candidate(2, Resolution.HD_720P, "Movie.2019.720p.WEB.mkv")
        agg = _FakeAggregator({"tt0111161": [cam, ok]})
        prefs = StreamPreferences(excluded_terms=("hdcam",))
        selection = await _make_use_case(agg, signer).select(_MOVIE, prefs)
        assert selection.primary is ok

    @pytest.mark.asyncio()
    async def test_enabled_sources_forwarded(self, signer: PlayLinkSigner) -> None:
        agg = _FakeAggregator()
        prefs = StreamPreferences(enabled_sources=frozenset({"torrentio"}))
        await _make_use_case(agg, signer).select(_MOVIE, prefs)
        assert agg.calls == [("movie", "tt0111161", frozenset({"torrentio"}))]

    @pytest.mark.asyncio()
    async def test_enrichment_runs(self, signer: PlayLinkSigner) -> None:
        raw = StreamCandidate(
            source="torrentio", info_hash="a" * 40, title="Movie.2019.2160p.WEB-DL.x265"
        )
        agg = _FakeAggregator({"tt0111161": [raw]})
        uc = _make_use_case(agg, signer, enrich=enrich_candidate)
        selection = await uc.select(_MOVIE, StreamPreferences())
        assert selection.primary is not None
        assert selection.primary.resolution is Resolution.UHD_4K


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


class TestExecute:
    @pytest.mark.asyncio()
    async def test_placeholder_when_empty(self, signer: PlayLinkSigner) -> None:
        streams = await _make_use_case(_FakeAggregator(), signer).execute(
            _MOVIE, StreamPreferences(), base_url=_BASE
        )
        assert streams == [PLACEHOLDER_STREAM]

    @pytest.mark.asyncio()
    async def test_primary_only_by_default(self, signer: PlayLinkSigner) -> None:
        agg = _FakeAggregator(
            {
                "tt0111161": [
                    _make_candidate(1, Resolution.HD_1080P),
                    _make_candidate(2, Resolution.HD_720P),
                ]
            }
        )
        streams = await _make_use_case(agg, signer).execute(
            _MOVIE, StreamPreferences(credential="k"), base_url=_BASE
        )
        assert len(streams) == 1
        assert streams[0]["name"].endswith("1080p")
        assert streams[0]["url"].startswith(f"{_BASE}/api/v1/play?")

    @pytest.mark.asyncio()
    async def test_fallback_quality_is_lower_rung(self, signer: PlayLinkSigner) -> None:
        agg = _FakeAggregator(
            {
                "tt0111161": [
                    _make_candidate(1, Resolution.HD_1080P),
                    _make_candidate(2, Resolution.HD_1080P, size_bytes=2 * _GB),
                    _make_candidate(3, Resolution.HD_720P),
                ]
            }
        )
        prefs = StreamPreferences(credential="k", show_fallback_quality=True)
        streams = await _make_use_case(agg, signer).execute(_MOVIE, prefs, base_url=_BASE)
        assert [s["name"].rsplit("\n", 1)[1] for s in streams] == ["1080p", "720p"]
        assert streams[1]["name"].startswith("⬇️ ")

    @pytest.mark.asyncio()
    async def test_all_three_roles(self, signer: PlayLinkSigner) -> None:
        agg = _FakeAggregator(
            {
                "tt0111161": [
                    _make_candidate(1, Resolution.HD_1080P),
                    _make_candidate(2, Resolution.HD_1080P, size_bytes=2 * _GB),
                    _make_candidate(3, Resolution.HD_720P),
                ]
            }
        )
        prefs = StreamPreferences(
            credential="k",
            provider="realdebrid",
            show_fallback_quality=True,
            show_second_opinion=True,
        )
        streams = await _make_use_case(agg, signer).execute(_MOVIE, prefs, base_url=_BASE)
        assert len(streams) == 3
        assert streams[2]["name"].startswith("🔁 ")
        assert all("[RD]" in s["name"] for s in streams)

    @pytest.mark.asyncio()
    async def test_without_credential_emits_info_hash(self, signer: PlayLinkSigner) -> None:
        agg = _FakeAggregator({"tt0111161": [_make_candidate(1, Resolution.HD_1080P)]})
        streams = await _make_use_case(agg, signer).execute(
            _MOVIE, StreamPreferences(), base_url=_BASE
        )
        assert streams[0]["infoHash"] == f"{1:040d}"


# ---------------------------------------------------------------------------
# Preload
# ---------------------------------------------------------------------------


class TestPreload:
    @pytest.mark.asyncio()
    async def test_next_episode_preloaded_once(self, signer: PlayLinkSigner) -> None:
        agg = _FakeAggregator()
        agg.gate = asyncio.Event()
        uc = _make_use_case(agg, signer, preload=True)

        await uc.execute(_EPISODE, StreamPreferences(), base_url=_BASE)
        await uc.execute(_EPISODE, StreamPreferences(), base_url=_BASE)
        assert uc.pending_preloads == 1

        agg.gate.set()
        for _ in range(5):
            await asyncio.sleep(0)
        assert uc.pending_preloads == 0
        preloaded = [c for c in agg.calls if c[1] == "tt0944947:1:6"]
        assert len(preloaded) == 1

    @pytest.mark.asyncio()
    async def test_movies_not_preloaded(self, signer: PlayLinkSigner) -> None:
        uc = _make_use_case(_FakeAggregator(), signer, preload=True)
        await uc.execute(_MOVIE, StreamPreferences(), base_url=_BASE)
        assert uc.pending_preloads == 0

    @pytest.mark.asyncio()
    async def test_disabled(self, signer: PlayLinkSigner) -> None:
        agg = _FakeAggregator()
        uc = _make_use_case(agg, signer, preload=False)
        await uc.execute(_EPISODE, StreamPreferences(), base_url=_BASE)
        assert uc.pending_preloads == 0
        assert len(agg.calls) == 1

    @pytest.mark.asyncio()
    async def test_aclose_cancels_pending(self, signer: PlayLinkSigner) -> None:
        agg = _FakeAggregator()
        agg.gate = asyncio.Event()
        uc = _make_use_case(agg, signer, preload=True)
        await uc.execute(_EPISODE, StreamPreferences(), base_url=_BASE)
        await uc.aclose()
        await asyncio.sleep(0)
        assert uc.pending_preloads == 0
