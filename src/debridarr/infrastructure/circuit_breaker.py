"""Per-credential circuit breaker for debrid provider calls.

When a credential accumulates ``failure_threshold`` failures, the breaker
opens and further resolutions are refused.  The failure record is
forgotten once ``reset_seconds`` pass without a new failure, or
immediately after any success.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum


class _State(Enum):
    CLOSED = "closed"
    OPEN = "open"


@dataclass
class _Failures:
    count: int
    last_failure: float


class CredentialCircuitBreaker:
    """Track failure counts per key and decide whether calls may proceed.

    Thread-safety note: this class is *not* thread-safe but is safe
    for single-threaded asyncio (no concurrent mutations within one
    event loop tick).
    """

    def __init__(
        self,
        *,
        failure_threshold: int = 5,
        reset_seconds: float = 300.0,
        max_entries: int = 200,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._threshold = failure_threshold
        self._reset = reset_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._failures: dict[str, _Failures] = {}

    def _current(self, key: str) -> _Failures | None:
        rec = self._failures.get(key)
        if rec is None:
            return None
        if self._clock() - rec.last_failure >= self._reset:
            del self._failures[key]
            return None
        return rec

    def allow(self, key: str) -> bool:
        """Return ``True`` unless *key* has tripped the breaker."""
        return self.state(key) == _State.CLOSED.value

    def record_success(self, key: str) -> None:
        self._failures.pop(key, None)

    def record_failure(self, key: str) -> None:
        rec = self._current(key)
        now = self._clock()
        if rec is None:
            self._failures[key] = _Failures(count=1, last_failure=now)
        else:
            rec.count += 1
            rec.last_failure = now

        if len(self._failures) > self._max_entries:
            oldest = min(self._failures, key=lambda k: self._failures[k].last_failure)
            del self._failures[oldest]

    def state(self, key: str) -> str:
        rec = self._current(key)
        if rec is not None and rec.count >= self._threshold:
            return _State.OPEN.value
        return _State.CLOSED.value

    def failures(self, key: str) -> int:
        rec = self._current(key)
        return rec.count if rec else 0

    def reset(self, key: str) -> None:
        self.record_success(key)

    def sweep(self) -> int:
        """Forget records whose reset window has elapsed."""
        now = self._clock()
        stale = [
            k for k, rec in self._failures.items()
            if now - rec.last_failure >= self._reset
        ]
        for k in stale:
            del self._failures[k]
        return len(stale)

    def snapshot(self) -> dict[str, object]:
        """Diagnostic summary; keys are credential fingerprints already."""
        open_count = sum(
            1 for k in list(self._failures) if self.state(k) == _State.OPEN.value
        )
        return {"tracked": len(self._failures), "open": open_count}
