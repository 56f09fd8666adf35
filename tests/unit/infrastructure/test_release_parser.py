"""Tests for release name parsing and candidate enrichment."""

from __future__ import annotations

import pytest

from debridarr.domain.entities.candidate import Resolution, StreamCandidate
from debridarr.infrastructure.stremio.release_parser import (
    enrich_candidate,
    parse_resolution,
    parse_size_to_bytes,
)


class TestParseResolution:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Movie.2019.2160p.WEB-DL.x265", Resolution.UHD_4K),
            ("Movie.2019.1080p.BluRay.x264", Resolution.HD_1080P),
            ("Movie.2019.720p.HDTV", Resolution.HD_720P),
            ("Movie.2019.480p.DVDRip", Resolution.SD_480P),
            ("Movie 4K HDR", Resolution.UHD_4K),
            ("Movie.2019.DVDRip", Resolution.UNKNOWN),
        ],
    )
    def test_resolution(self, name: str, expected: Resolution) -> None:
        assert parse_resolution(name) is expected


class TestParseSize:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("💾 1.5 GB ⚙️ YTS", int(1.5 * 1024**3)),
            ("700 MB", 700 * 1024**2),
            ("2,1 GiB", int(2.1 * 1024**3)),
            ("no size here", 0),
            ("", 0),
            (None, 0),
        ],
    )
    def test_sizes(self, text: str | None, expected: int) -> None:
        assert parse_size_to_bytes(text) == expected


class TestEnrichCandidate:
    def test_episode_release(self) -> None:
        cand = StreamCandidate(
            source="torrentio",
            info_hash="a" * 40,
            title="Show.S01E05.1080p.WEB-DL.x264-GRP\n👤 42 💾 1.2 GB",
        )
        enrich_candidate(cand)
        assert cand.resolution is Resolution.HD_1080P
        assert cand.codec == "h264"
        assert cand.source_quality == "web-dl"
        assert cand.season == 1
        assert cand.episode == 5
        assert cand.size_bytes == int(1.2 * 1024**3)

    def test_filename_preferred_over_title(self) -> None:
        cand = StreamCandidate(
            source="torrentio",
            info_hash="a" * 40,
            filename="Movie.2019.2160p.BluRay.REMUX.HEVC.mkv",
            title="Movie 2019 720p",
        )
        enrich_candidate(cand)
        assert cand.resolution is Resolution.UHD_4K
        assert cand.codec == "h265"
        assert cand.source_quality == "remux"

    def test_source_values_kept(self) -> None:
        cand = StreamCandidate(
            source="torrentio",
            info_hash="a" * 40,
            filename="Movie.2019.1080p.x264.mkv",
            resolution=Resolution.HD_720P,
            codec="av1",
            size_bytes=123,
        )
        enrich_candidate(cand)
        assert cand.resolution is Resolution.HD_720P
        assert cand.codec == "av1"
        assert cand.size_bytes == 123

    def test_language_detected(self) -> None:
        cand = StreamCandidate(
            source="torrentio",
            info_hash="a" * 40,
            filename="Movie.2019.FRENCH.1080p.WEB-DL.x264.mkv",
        )
        enrich_candidate(cand)
        assert "fr" in cand.languages

    def test_empty_text_is_harmless(self) -> None:
        cand = StreamCandidate(source="torrentio", info_hash="a" * 40)
        enrich_candidate(cand)
        assert cand.resolution is Resolution.UNKNOWN
        assert cand.languages == ()
