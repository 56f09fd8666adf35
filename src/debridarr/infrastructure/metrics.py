"""Zero-impact in-memory performance metrics.

All counters are plain Python integers manipulated inside the single-threaded
async event loop, so no locks and no I/O.  ``time.perf_counter_ns()`` is used for
timing.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field


def _avg_ms(total_ns: int, n: int) -> float:
    return round(total_ns / n / 1_000_000, 1) if n else 0.0


@dataclass
class SourceStats:
    """Accumulated statistics for one upstream source."""

    queries: int = 0
    successes: int = 0
    failures: int = 0
    timeouts: int = 0
    total_candidates: int = 0
    total_duration_ns: int = 0

    def snapshot(self) -> dict[str, object]:
        return {
            "queries": self.queries,
            "successes": self.successes,
            "failures": self.failures,
            "timeouts": self.timeouts,
            "total_candidates": self.total_candidates,
            "avg_duration_ms": _avg_ms(self.total_duration_ns, self.queries),
        }


@dataclass
class ResolveStats:
    """Click-time resolution outcomes."""

    requests: int = 0
    redirects: int = 0
    cache_hits: int = 0
    shared: int = 0
    magnet_fallbacks: int = 0
    errors: dict[str, int] = field(default_factory=dict)
    total_duration_ns: int = 0

    def snapshot(self) -> dict[str, object]:
        return {
            "requests": self.requests,
            "redirects": self.redirects,
            "cache_hits": self.cache_hits,
            "shared": self.shared,
            "magnet_fallbacks": self.magnet_fallbacks,
            "errors": dict(sorted(self.errors.items())),
            "avg_duration_ms": _avg_ms(self.total_duration_ns, self.requests),
        }


@dataclass
class MetricsCollector:
    """Central in-memory metrics collector."""

    _sources: dict[str, SourceStats] = field(default_factory=dict)
    _resolve: ResolveStats = field(default_factory=ResolveStats)
    _start_ns: int = field(default_factory=time.perf_counter_ns)

    def record_source_query(
        self,
        name: str,
        duration_ns: int,
        candidate_count: int,
        *,
        success: bool,
        timed_out: bool = False,
    ) -> None:
        stats = self._sources.get(name)
        if stats is None:
            stats = SourceStats()
            self._sources[name] = stats

        stats.queries += 1
        stats.total_duration_ns += duration_ns
        if success:
            stats.successes += 1
            stats.total_candidates += candidate_count
        elif timed_out:
            stats.timeouts += 1
        else:
            stats.failures += 1

    def record_resolution(
        self,
        duration_ns: int,
        *,
        error_kind: str | None = None,
        cached: bool = False,
        shared: bool = False,
        magnet_fallback: bool = False,
    ) -> None:
        r = self._resolve
        r.requests += 1
        r.total_duration_ns += duration_ns
        if error_kind is not None:
            r.errors[error_kind] = r.errors.get(error_kind, 0) + 1
            return
        r.redirects += 1
        r.cache_hits += int(cached)
        r.shared += int(shared)
        r.magnet_fallbacks += int(magnet_fallback)

    def snapshot(self) -> dict[str, object]:
        uptime_s = round((time.perf_counter_ns() - self._start_ns) / 1_000_000_000, 1)
        return {
            "uptime_seconds": uptime_s,
            "sources": {
                name: stats.snapshot() for name, stats in sorted(self._sources.items())
            },
            "resolve": self._resolve.snapshot(),
        }
