"""Concurrent fan-out over all enabled upstream sources."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable, Sequence
from typing import Protocol

import structlog

from debridarr.domain.entities.candidate import ContentType, StreamCandidate
from debridarr.domain.ports.stream_source import StreamSourcePort

log = structlog.get_logger(__name__)


class _MetricsRecorder(Protocol):
    def record_source_query(
        self,
        name: str,
        duration_ns: int,
        candidate_count: int,
        *,
        success: bool,
        timed_out: bool = False,
    ) -> None: ...


class SourceAggregator:
    """Queries every enabled source at once, each under its own timeout.

    A failing or slow source contributes an empty list and never aborts
    the request.  There are no retries.  The result is the union of all
    successful sources in configuration order, each candidate tagged with
    the name of the source it came from.
    """

    def __init__(
        self,
        sources: Sequence[StreamSourcePort],
        *,
        timeout_seconds: float = 12.0,
        metrics: _MetricsRecorder | None = None,
    ) -> None:
        self._sources = list(sources)
        self._timeout = timeout_seconds
        self._metrics = metrics

    @property
    def source_names(self) -> list[str]:
        return [s.name for s in self._sources]

    def _record(
        self, name: str, start_ns: int, count: int, *, success: bool, timed_out: bool = False
    ) -> None:
        if self._metrics is None:
            return
        self._metrics.record_source_query(
            name,
            time.perf_counter_ns() - start_ns,
            count,
            success=success,
            timed_out=timed_out,
        )

    async def _query_one(
        self, source: StreamSourcePort, content_type: ContentType, content_id: str
    ) -> list[StreamCandidate]:
        start_ns = time.perf_counter_ns()
        try:
            found = await asyncio.wait_for(
                source.query(content_type, content_id), timeout=self._timeout
            )
        except TimeoutError:
            log.warning(
                "source_timeout",
                source=source.name,
                content_id=content_id,
                timeout=self._timeout,
            )
            self._record(source.name, start_ns, 0, success=False, timed_out=True)
            return []
        except Exception:
            log.warning(
                "source_query_failed",
                source=source.name,
                content_id=content_id,
                exc_info=True,
            )
            self._record(source.name, start_ns, 0, success=False)
            return []

        for cand in found:
            cand.source = source.name
            if source.pre_resolved and cand.url and not cand.info_hash and not cand.resolved:
                if cand.url.lower().startswith(("http://", "https://")):
                    cand.mark_resolved(cand.url)
        self._record(source.name, start_ns, len(found), success=True)
        return found

    async def query_all(
        self,
        content_type: ContentType,
        content_id: str,
        enabled: Iterable[str] | None = None,
    ) -> list[StreamCandidate]:
        wanted = set(enabled) if enabled is not None else None
        active = [s for s in self._sources if wanted is None or s.name in wanted]
        if not active:
            return []

        results = await asyncio.gather(
            *(self._query_one(s, content_type, content_id) for s in active)
        )

        merged: list[StreamCandidate] = []
        for found in results:
            merged.extend(found)

        log.info(
            "aggregation_complete",
            content_id=content_id,
            sources=len(active),
            candidates=len(merged),
            per_source={s.name: len(r) for s, r in zip(active, results)},
        )
        return merged
