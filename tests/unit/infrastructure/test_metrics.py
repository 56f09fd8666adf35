"""Tests for MetricsCollector."""

from __future__ import annotations

from debridarr.infrastructure.metrics import MetricsCollector


class TestSourceMetrics:
    def test_counts_by_outcome(self) -> None:
        m = MetricsCollector()
        m.record_source_query("torrentio", 2_000_000, 5, success=True)
        m.record_source_query("torrentio", 4_000_000, 0, success=False)
        m.record_source_query("torrentio", 6_000_000, 0, success=False, timed_out=True)

        stats = m.snapshot()["sources"]["torrentio"]
        assert stats == {
            "queries": 3,
            "successes": 1,
            "failures": 1,
            "timeouts": 1,
            "total_candidates": 5,
            "avg_duration_ms": 4.0,
        }

    def test_sources_sorted(self) -> None:
        m = MetricsCollector()
        m.record_source_query("b", 1, 0, success=True)
        m.record_source_query("a", 1, 0, success=True)
        assert list(m.snapshot()["sources"]) == ["a", "b"]


class TestResolveMetrics:
    def test_outcomes(self) -> None:
        m = MetricsCollector()
        m.record_resolution(1_000_000, cached=True)
        m.record_resolution(1_000_000, shared=True)
        m.record_resolution(1_000_000, magnet_fallback=True)
        m.record_resolution(1_000_000, error_kind="still_caching")
        m.record_resolution(1_000_000, error_kind="still_caching")

        r = m.snapshot()["resolve"]
        assert r["requests"] == 5
        assert r["redirects"] == 3
        assert r["cache_hits"] == 1
        assert r["shared"] == 1
        assert r["magnet_fallbacks"] == 1
        assert r["errors"] == {"still_caching": 2}
        assert r["avg_duration_ms"] == 1.0

    def test_empty_snapshot(self) -> None:
        snap = MetricsCollector().snapshot()
        assert snap["sources"] == {}
        assert snap["resolve"]["avg_duration_ms"] == 0.0
        assert snap["uptime_seconds"] >= 0
