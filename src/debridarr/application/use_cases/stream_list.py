"""Stream list use case.

Content id -> parallel source aggregation -> enrich -> episode filter
-> exclusion filter -> score -> select -> Stremio stream dicts.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from typing import Any, Protocol

import structlog

from debridarr.domain.entities.candidate import (
    ContentType,
    SelectionResult,
    StreamCandidate,
    StreamPreferences,
    StreamRequest,
)
from debridarr.infrastructure.security.play_signer import PlayLinkSigner
from debridarr.infrastructure.stremio.candidate_filter import (
    filter_by_episode,
    filter_excluded,
)
from debridarr.infrastructure.stremio.candidate_scorer import ScoreFn, ScoringContext
from debridarr.infrastructure.stremio.candidate_selector import (
    rank_candidates,
    select_candidates,
)
from debridarr.infrastructure.stremio.stream_formatter import (
    PLACEHOLDER_STREAM,
    format_stream,
)

log = structlog.get_logger(__name__)


class _Aggregator(Protocol):
    async def query_all(
        self,
        content_type: ContentType,
        content_id: str,
        enabled: Iterable[str] | None = None,
    ) -> list[StreamCandidate]: ...


class _StremioConfig(Protocol):
    addon_name: str
    preload_next_episode: bool


_EnrichFn = Callable[[StreamCandidate], StreamCandidate]


class StreamListUseCase:
    """Turn a stream request into at most three Stremio streams.

    An empty result becomes a single placeholder stream, so the player
    shows a message instead of retrying.
    """

    def __init__(
        self,
        *,
        aggregator: _Aggregator,
        score_fn: ScoreFn,
        enrich_fn: _EnrichFn,
        signer: PlayLinkSigner,
        config: _StremioConfig,
        provider_labels: dict[str, str] | None = None,
    ) -> None:
        self._aggregator = aggregator
        self._score_fn = score_fn
        self._enrich_fn = enrich_fn
        self._signer = signer
        self._addon_name = config.addon_name
        self._preload_enabled = config.preload_next_episode
        self._provider_labels = provider_labels or {}
        self._preloads: dict[str, asyncio.Task[None]] = {}

    @property
    def pending_preloads(self) -> int:
        return len(self._preloads)

    async def _collect(
        self, request: StreamRequest, prefs: StreamPreferences
    ) -> list[StreamCandidate]:
        found = await self._aggregator.query_all(
            request.content_type, request.stream_id, prefs.enabled_sources
        )
        if not found:
            return []

        # guessit is CPU-bound; keep it off the event loop
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, lambda: [self._enrich_fn(c) for c in found])
        return found

    async def select(
        self, request: StreamRequest, prefs: StreamPreferences
    ) -> SelectionResult:
        """Aggregate, filter, rank and pick; no formatting."""
        candidates = await self._collect(request, prefs)
        total = len(candidates)

        if request.is_episode:
            candidates = filter_by_episode(candidates, request.season, request.episode)
        candidates = filter_excluded(candidates, prefs.excluded_terms)

        context = ScoringContext(
            languages=prefs.languages,
            max_size_bytes=prefs.max_size_bytes,
            conservative=prefs.conservative,
        )
        ranked = rank_candidates(candidates, self._score_fn, context)
        selection = select_candidates(ranked)

        log.info(
            "stream_selection",
            content_id=request.stream_id,
            total=total,
            kept=len(ranked),
            primary=selection.primary.resolution.label if selection.primary else None,
            fallback=selection.fallback.resolution.label if selection.fallback else None,
        )
        return selection

    async def execute(
        self,
        request: StreamRequest,
        prefs: StreamPreferences,
        *,
        base_url: str,
    ) -> list[dict[str, Any]]:
        selection = await self.select(request, prefs)
        self._schedule_preload(request, prefs)

        visible = selection.visible(
            show_fallback=prefs.show_fallback_quality,
            show_second_opinion=prefs.show_second_opinion,
        )
        if not visible:
            return [dict(PLACEHOLDER_STREAM)]

        roles = {}
        if selection.primary is not None:
            roles[selection.primary.identity] = "primary"
        if selection.fallback is not None:
            roles.setdefault(selection.fallback.identity, "fallback")
        if selection.second_opinion is not None:
            roles.setdefault(selection.second_opinion.identity, "second_opinion")

        return [
            format_stream(
                cand,
                role=roles.get(cand.identity, "primary"),
                addon_name=self._addon_name,
                content_id=request.stream_id,
                signer=self._signer,
                base_url=base_url,
                credential=prefs.credential,
                provider=prefs.provider,
                provider_short=self._provider_labels.get(prefs.provider, prefs.provider.upper()),
            )
            for cand in visible
        ]

    # ------------------------------------------------------------------
    # Next-episode preload
    # ------------------------------------------------------------------

    def _schedule_preload(self, request: StreamRequest, prefs: StreamPreferences) -> None:
        if not self._preload_enabled:
            return
        nxt = request.next_episode()
        if nxt is None or nxt.stream_id in self._preloads:
            return
        task = asyncio.create_task(self._preload(nxt, prefs))
        self._preloads[nxt.stream_id] = task
        task.add_done_callback(lambda _t, key=nxt.stream_id: self._preloads.pop(key, None))

    async def _preload(self, request: StreamRequest, prefs: StreamPreferences) -> None:
        """Warm the source caches for the next episode; never raises."""
        try:
            found = await self._aggregator.query_all(
                request.content_type, request.stream_id, prefs.enabled_sources
            )
            log.debug("preload_complete", content_id=request.stream_id, candidates=len(found))
        except Exception:
            log.debug("preload_failed", content_id=request.stream_id, exc_info=True)

    async def aclose(self) -> None:
        tasks = list(self._preloads.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
