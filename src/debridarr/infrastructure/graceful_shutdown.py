"""Readiness and request draining for the HTTP server."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

log = structlog.get_logger(__name__)


class GracefulShutdown:
    """Counts in-flight requests so shutdown can wait for them.

    ``readyz`` reports ready between :meth:`mark_ready` (end of startup)
    and :meth:`wait_for_drain` (start of shutdown).
    """

    def __init__(self) -> None:
        self._active = 0
        self._ready = False
        self._stopping = False
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def active_requests(self) -> int:
        return self._active

    @property
    def is_shutting_down(self) -> bool:
        return self._stopping

    @property
    def is_ready(self) -> bool:
        return self._ready and not self._stopping

    def mark_ready(self) -> None:
        self._ready = True

    @contextmanager
    def track(self) -> Iterator[None]:
        """Count the enclosed block as one in-flight request."""
        self._active += 1
        self._idle.clear()
        try:
            yield
        finally:
            self._active = max(0, self._active - 1)
            if self._active == 0:
                self._idle.set()

    async def wait_for_drain(self, *, timeout: float = 10.0) -> bool:
        """Stop reporting ready and wait for in-flight requests.

        Returns False when requests were still running at *timeout*.
        """
        self._stopping = True
        if self._active == 0:
            return True
        log.info("shutdown_draining", active_requests=self._active)
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except TimeoutError:
            log.warning(
                "shutdown_drain_timeout",
                remaining_requests=self._active,
                timeout=timeout,
            )
            return False
        log.info("shutdown_drained")
        return True

    def snapshot(self) -> dict[str, object]:
        return {
            "is_ready": self.is_ready,
            "is_shutting_down": self._stopping,
            "active_requests": self._active,
        }
