"""Tests for candidate-side domain entities."""

from __future__ import annotations

import pytest

from debridarr.domain.entities.candidate import (
    Resolution,
    SelectionResult,
    StreamCandidate,
    StreamRequest,
)

_HASH = "A" * 40


def _cand(**kwargs) -> StreamCandidate:
    kwargs.setdefault("source", "torrentio")
    kwargs.setdefault("info_hash", _HASH)
    return StreamCandidate(**kwargs)


class TestResolution:
    def test_ordering(self) -> None:
        assert Resolution.UHD_4K > Resolution.HD_1080P > Resolution.HD_720P
        assert Resolution.SD_480P > Resolution.UNKNOWN

    @pytest.mark.parametrize(
        ("res", "label"),
        [
            (Resolution.UHD_4K, "4K"),
            (Resolution.HD_1080P, "1080p"),
            (Resolution.SD_480P, "480p"),
            (Resolution.UNKNOWN, "Unknown"),
        ],
    )
    def test_labels(self, res: Resolution, label: str) -> None:
        assert res.label == label


class TestStreamCandidate:
    def test_requires_hash_or_url(self) -> None:
        with pytest.raises(ValueError, match="info hash or a URL"):
            StreamCandidate(source="x")

    def test_info_hash_lowercased(self) -> None:
        assert _cand().info_hash == "a" * 40

    def test_identity_includes_file_index(self) -> None:
        assert _cand(file_index=2).identity == f"{'a' * 40}:2"
        assert _cand().identity == "a" * 40

    def test_identity_falls_back_to_url(self) -> None:
        c = _cand(info_hash=None, url="https://cdn.example.com/a.mkv")
        assert c.identity == "https://cdn.example.com/a.mkv"

    def test_resolved_candidate_needs_direct_url(self) -> None:
        with pytest.raises(ValueError, match="direct URL"):
            _cand(info_hash=None, url="magnet:?xt=urn:btih:abc", resolved=True)

    def test_mark_resolved_rejects_magnet(self) -> None:
        c = _cand()
        with pytest.raises(ValueError):
            c.mark_resolved("magnet:?xt=urn:btih:abc")
        assert c.resolved is False

    def test_mark_resolved_sets_url(self) -> None:
        c = _cand()
        c.mark_resolved("https://cdn.example.com/a.mkv")
        assert c.resolved is True
        assert c.url == "https://cdn.example.com/a.mkv"

    def test_search_text_joins_fields(self) -> None:
        c = _cand(filename="a.mkv", title="Title", description="desc")
        assert c.search_text == "a.mkv Title desc"


class TestStreamRequest:
    def test_movie_stream_id(self) -> None:
        req = StreamRequest(content_id="tt1", content_type="movie")
        assert req.stream_id == "tt1"
        assert req.is_episode is False
        assert req.next_episode() is None

    def test_episode_stream_id(self) -> None:
        req = StreamRequest(content_id="tt1", content_type="series", season=2, episode=3)
        assert req.is_episode is True
        assert req.stream_id == "tt1:2:3"

    def test_next_episode(self) -> None:
        req = StreamRequest(content_id="tt1", content_type="series", season=2, episode=3)
        nxt = req.next_episode()
        assert nxt is not None
        assert nxt.stream_id == "tt1:2:4"


class TestSelectionResult:
    def test_empty_when_no_primary(self) -> None:
        assert SelectionResult().visible(show_fallback=True, show_second_opinion=True) == []

    def test_secondaries_hidden_by_default_flags(self) -> None:
        p = _cand(info_hash="1" * 40)
        f = _cand(info_hash="2" * 40)
        s = _cand(info_hash="3" * 40)
        result = SelectionResult(primary=p, fallback=f, second_opinion=s)
        assert result.visible(show_fallback=False, show_second_opinion=False) == [p]
        assert result.visible(show_fallback=True, show_second_opinion=False) == [p, f]
        assert result.visible(show_fallback=False, show_second_opinion=True) == [p, s]
        assert result.visible(show_fallback=True, show_second_opinion=True) == [p, f, s]

    def test_duplicates_collapsed(self) -> None:
        p = _cand(info_hash="1" * 40)
        dup = _cand(info_hash="1" * 40)
        result = SelectionResult(primary=p, fallback=dup, second_opinion=dup)
        assert result.visible(show_fallback=True, show_second_opinion=True) == [p]
