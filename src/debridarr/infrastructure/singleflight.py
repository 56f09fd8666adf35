"""Single-flight: at most one in-flight execution per key.

The first caller for a key runs the work; callers arriving while it is
in flight await the same future.  The pending entry is removed when the
work finishes, fails or is cancelled, so a key can never stay blocked.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

import structlog

log = structlog.get_logger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class SingleFlightAborted(Exception):
    """The leading execution was cancelled before producing a result."""


@dataclass
class PendingCall(Generic[V]):
    future: asyncio.Future[V]
    started_at: float = field(default_factory=time.monotonic)
    waiters: int = 0


def _consume_exception(fut: asyncio.Future) -> None:
    # Mark the exception retrieved when nobody else awaited it.
    if not fut.cancelled():
        fut.exception()


class SingleFlight(Generic[K, V]):
    """Deduplicate concurrent work by key."""

    def __init__(self) -> None:
        self._calls: dict[K, PendingCall[V]] = {}

    def __len__(self) -> int:
        return len(self._calls)

    def in_flight(self, key: K) -> bool:
        return key in self._calls

    async def do(self, key: K, fn: Callable[[], Awaitable[V]]) -> tuple[V, bool]:
        """Run *fn* once per key; returns ``(result, shared)``.

        ``shared`` is True for callers that joined an execution started
        by someone else.  A waiter's own cancellation never cancels the
        shared execution.
        """
        pending = self._calls.get(key)
        if pending is not None:
            pending.waiters += 1
            return await asyncio.shield(pending.future), True

        fut: asyncio.Future[V] = asyncio.get_running_loop().create_future()
        fut.add_done_callback(_consume_exception)
        self._calls[key] = PendingCall(future=fut)
        try:
            result = await fn()
        except asyncio.CancelledError:
            if not fut.done():
                fut.set_exception(SingleFlightAborted(f"execution for {key!r} aborted"))
            raise
        except Exception as exc:
            if not fut.done():
                fut.set_exception(exc)
            raise
        else:
            fut.set_result(result)
            return result, False
        finally:
            self._calls.pop(key, None)

    def snapshot(self) -> dict[str, object]:
        now = time.monotonic()
        oldest = max((now - c.started_at for c in self._calls.values()), default=0.0)
        return {
            "in_flight": len(self._calls),
            "waiters": sum(c.waiters for c in self._calls.values()),
            "oldest_age_seconds": round(oldest, 1),
        }
