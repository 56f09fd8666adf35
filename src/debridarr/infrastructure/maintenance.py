"""Periodic sweep of process-wide tables.

Caches, the rate limiter and the circuit breaker only expire entries
lazily on access; the sweeper bounds their memory when traffic stops.
"""

from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable

import structlog

log = structlog.get_logger(__name__)


@runtime_checkable
class Sweepable(Protocol):
    def sweep(self) -> int: ...


class PeriodicSweeper:
    """Calls ``sweep()`` on every registered table at a fixed interval.

    Call :meth:`run_forever` as an asyncio task during app lifespan.
    Cancellation ends the task at its current sleep.
    """

    def __init__(
        self, targets: dict[str, Sweepable], *, interval_seconds: float = 60.0
    ) -> None:
        self._targets = targets
        self._interval = interval_seconds

    def sweep_once(self) -> dict[str, int]:
        removed: dict[str, int] = {}
        for name, target in self._targets.items():
            try:
                removed[name] = target.sweep()
            except Exception:
                log.error("sweep_failed", table=name, exc_info=True)
        if any(removed.values()):
            log.debug("sweep_complete", removed=removed)
        return removed

    async def run_forever(self) -> None:
        log.info("sweeper_started", interval_seconds=self._interval)
        try:
            while True:
                await asyncio.sleep(self._interval)
                self.sweep_once()
        except asyncio.CancelledError:
            log.info("sweeper_cancelled")
            raise
