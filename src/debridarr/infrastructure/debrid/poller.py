"""Status polling for an uploaded torrent.

The poller is a small state machine over provider statuses:

    QUEUED ──► DOWNLOADING ──► READY
       │            │
       │            └─► (zero progress for ``stuck_after`` polls) ► stuck
       └─► (``manual_after`` queued polls in a row) ► manual action
    any ──► DEAD / ERROR ► permanent failure

Partial progress is never a failure: running out of polls while bytes
are moving ends in "still caching" so the user can retry later.
Sleeping and the delay schedule are injected for deterministic tests.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

import structlog

from debridarr.domain.entities.errors import (
    DebridApiError,
    ManualActionRequired,
    PermanentProviderError,
    StillCaching,
    TorrentStuck,
)
from debridarr.domain.entities.resolution import TorrentState, TorrentStatus
from debridarr.domain.ports.debrid_provider import DebridProviderPort

log = structlog.get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class BackoffStrategy(Protocol):
    def delay(self, status: TorrentStatus | None, iteration: int) -> float: ...


@dataclass(frozen=True)
class ProgressAwareBackoff:
    """Short delay while nothing moves, a longer one once bytes arrive."""

    queued_delay: float = 1.0
    progress_delay: float = 2.0

    def delay(self, status: TorrentStatus | None, iteration: int) -> float:
        if status is None or not status.has_progress:
            return self.queued_delay
        return self.progress_delay


@dataclass(frozen=True)
class PollPolicy:
    max_iterations: int = 12
    stuck_after: int = 8
    manual_after: int = 6


class TorrentPoller:
    def __init__(
        self,
        *,
        policy: PollPolicy | None = None,
        backoff: BackoffStrategy | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._policy = policy or PollPolicy()
        self._backoff = backoff or ProgressAwareBackoff()
        self._sleep = sleep

    async def wait_ready(
        self, provider: DebridProviderPort, torrent_id: str, credential: str
    ) -> TorrentStatus:
        """Poll until READY; raise the matching resolve error otherwise."""
        policy = self._policy
        last: TorrentStatus | None = None
        queued_run = 0
        zero_progress = 0

        for iteration in range(1, policy.max_iterations + 1):
            status: TorrentStatus | None
            try:
                status = await provider.status(torrent_id, credential)
            except DebridApiError as exc:
                # transient; keep polling with the previous picture
                log.debug(
                    "poll_status_failed",
                    provider=provider.key,
                    torrent_id=torrent_id,
                    iteration=iteration,
                    code=exc.code,
                )
                status = None

            if status is not None:
                last = status
                if status.state is TorrentState.READY:
                    return status
                if status.state.is_terminal_failure:
                    raise PermanentProviderError(
                        f"torrent {status.state.value}: {status.message}",
                        code=f"torrent_{status.state.value}",
                    )
                if status.state is TorrentState.STUCK:
                    raise TorrentStuck(status.message or "provider reports stuck")

                queued_run = queued_run + 1 if status.state is TorrentState.QUEUED else 0
                if status.state is TorrentState.DOWNLOADING and not status.has_progress:
                    zero_progress += 1
                elif status.has_progress:
                    zero_progress = 0

                if queued_run >= policy.manual_after:
                    raise ManualActionRequired(
                        f"torrent still queued after {queued_run} checks"
                    )
                if zero_progress >= policy.stuck_after:
                    raise TorrentStuck(
                        f"no progress after {zero_progress} checks"
                    )

            if iteration < policy.max_iterations:
                await self._sleep(self._backoff.delay(status, iteration))

        if last is None:
            raise DebridApiError(
                f"{provider.key} status unavailable for {torrent_id}", code="status_unavailable"
            )
        percent = round(100 * last.downloaded / last.size, 1) if last.size else 0.0
        raise StillCaching(f"torrent {last.state.value} ({percent}%)")
