"""Sliding-window rate limiter keyed by credential (or client IP).

Each key keeps a deque of admission timestamps.  A request is admitted
only if every configured window (e.g. 30/min and 1000/hour) still has
room; rejected requests are not recorded.
"""

from __future__ import annotations

import time
from collections import OrderedDict, deque
from collections.abc import Callable, Sequence

import structlog

log = structlog.get_logger(__name__)

# (max requests, window seconds)
Window = tuple[int, float]


class SlidingWindowRateLimiter:
    """Per-key admission control over one or more sliding windows.

    Thread-safety note: not thread-safe, but safe for single-threaded
    asyncio since no method awaits.

    Args:
        windows: ``(limit, seconds)`` pairs; a limit of 0 disables that window.
        max_keys: Tracked keys beyond this are dropped least-recently-used first.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        windows: Sequence[Window],
        *,
        max_keys: int = 200,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._windows = [(limit, secs) for limit, secs in windows if limit > 0]
        self._longest = max((secs for _, secs in self._windows), default=0.0)
        self._max_keys = max_keys
        self._clock = clock
        self._hits: OrderedDict[str, deque[float]] = OrderedDict()

    @property
    def enabled(self) -> bool:
        return bool(self._windows)

    def _prune(self, hits: deque[float], now: float) -> None:
        cutoff = now - self._longest
        while hits and hits[0] <= cutoff:
            hits.popleft()

    def _count_since(self, hits: deque[float], since: float) -> int:
        # deques are append-only in time order; walk from the newest end
        n = 0
        for ts in reversed(hits):
            if ts <= since:
                break
            n += 1
        return n

    def allow(self, key: str) -> bool:
        """Admit and record one request for *key*, or refuse it."""
        if not self._windows:
            return True

        now = self._clock()
        hits = self._hits.get(key)
        if hits is None:
            hits = deque()
            self._hits[key] = hits
        else:
            self._hits.move_to_end(key)
        self._prune(hits, now)

        for limit, secs in self._windows:
            if self._count_since(hits, now - secs) >= limit:
                return False

        hits.append(now)
        while len(self._hits) > self._max_keys:
            self._hits.popitem(last=False)
        return True

    def retry_after(self, key: str) -> float:
        """Seconds until *key* would be admitted again (0 if it would be now)."""
        hits = self._hits.get(key)
        if not hits:
            return 0.0
        now = self._clock()
        wait = 0.0
        for limit, secs in self._windows:
            recent = [ts for ts in hits if ts > now - secs]
            if len(recent) >= limit:
                # the oldest hit that must age out before a slot frees up
                oldest = recent[len(recent) - limit]
                wait = max(wait, oldest + secs - now)
        return wait

    def remaining(self, key: str) -> int:
        """Slots left in the tightest window."""
        if not self._windows:
            return 0
        hits = self._hits.get(key) or deque()
        now = self._clock()
        return max(
            0,
            min(limit - self._count_since(hits, now - secs) for limit, secs in self._windows),
        )

    def sweep(self) -> int:
        """Drop keys with no hits inside the longest window."""
        now = self._clock()
        stale = []
        for key, hits in self._hits.items():
            self._prune(hits, now)
            if not hits:
                stale.append(key)
        for key in stale:
            del self._hits[key]
        return len(stale)

    def snapshot(self) -> dict[str, object]:
        return {
            "tracked_keys": len(self._hits),
            "windows": [{"limit": lim, "seconds": secs} for lim, secs in self._windows],
        }
