"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from debridarr.application.use_cases.play_resolve import PlayResolveUseCase
from debridarr.application.use_cases.stream_list import StreamListUseCase
from debridarr.domain.entities.resolution import ResolutionCacheEntry
from debridarr.domain.ports import CachePort, StreamSourcePort
from debridarr.infrastructure.cache import TtlCache, create_cache
from debridarr.infrastructure.circuit_breaker import CredentialCircuitBreaker
from debridarr.infrastructure.common.rate_limiter import SlidingWindowRateLimiter
from debridarr.infrastructure.config.schema import AppConfig
from debridarr.infrastructure.debrid import (
    AllDebridProvider,
    DebridProviderRegistry,
    PollPolicy,
    ProgressAwareBackoff,
    RealDebridProvider,
    TorrentPoller,
)
from debridarr.infrastructure.maintenance import PeriodicSweeper, Sweepable
from debridarr.infrastructure.metrics import MetricsCollector
from debridarr.infrastructure.security import PlayLinkSigner
from debridarr.infrastructure.singleflight import SingleFlight
from debridarr.infrastructure.sources import AddonStreamSource, SourceAggregator
from debridarr.infrastructure.stremio.candidate_scorer import (
    CandidateScorer,
    StaticReliabilityTable,
)
from debridarr.infrastructure.stremio.release_parser import enrich_candidate
from debridarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


def _build_sources(
    config: AppConfig, http_client: httpx.AsyncClient, cache: CachePort
) -> list[StreamSourcePort]:
    sources: list[StreamSourcePort] = []
    for sc in config.sources:
        if not sc.enabled:
            log.info("source_disabled_by_config", source=sc.name)
            continue
        sources.append(
            AddonStreamSource(
                name=sc.name,
                base_url=sc.base_url,
                http_client=http_client,
                cache=cache if sc.cache_ttl_seconds > 0 else None,
                cache_ttl=sc.cache_ttl_seconds,
                timeout=sc.timeout_seconds,
                pre_resolved=sc.pre_resolved,
                season_pack_fallback=sc.season_pack_fallback,
            )
        )
    return sources


def _wire_resolution(state: AppState, config: AppConfig, signer: PlayLinkSigner) -> None:
    """Providers, shared guard tables and the play use case."""
    debrid = config.debrid

    state.providers = DebridProviderRegistry(
        [
            AllDebridProvider(
                state.http_client,
                agent=debrid.agent,
                timeout=debrid.request_timeout_seconds,
            ),
            RealDebridProvider(
                state.http_client,
                timeout=debrid.request_timeout_seconds,
            ),
        ]
    )
    state.limiter = SlidingWindowRateLimiter(
        [(debrid.rate_limit_per_minute, 60.0), (debrid.rate_limit_per_hour, 3600.0)],
        max_keys=debrid.rate_limit_max_keys,
    )
    state.breaker = CredentialCircuitBreaker(
        failure_threshold=debrid.breaker_failure_threshold,
        reset_seconds=debrid.breaker_reset_seconds,
        max_entries=debrid.breaker_max_entries,
    )
    state.resolution_cache = TtlCache(
        ttl_seconds=debrid.resolution_cache_ttl_seconds,
        max_entries=debrid.resolution_cache_max_entries,
    )
    state.flights = SingleFlight[str, ResolutionCacheEntry]()

    poller = TorrentPoller(
        policy=PollPolicy(
            max_iterations=debrid.poll_max_iterations,
            stuck_after=debrid.poll_stuck_after,
            manual_after=debrid.poll_manual_after,
        ),
        backoff=ProgressAwareBackoff(
            queued_delay=debrid.poll_queued_delay_seconds,
            progress_delay=debrid.poll_progress_delay_seconds,
        ),
    )
    state.play_resolve_uc = PlayResolveUseCase(
        signer=signer,
        providers=state.providers,
        limiter=state.limiter,
        breaker=state.breaker,
        cache=state.resolution_cache,
        flights=state.flights,
        poller=poller,
        config=debrid,
        metrics=state.metrics,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan hook: initialize and clean up all resources.

    Order matters:
        1. Source result cache (sources depend on it)
        2. HTTP client (shared by sources and debrid providers)
        3. Sources + aggregator
        4. Signer and scorer
        5. Debrid providers, guard tables and the play use case
        6. Stream list use case (labels come from the providers)
        7. Periodic sweeper
    """
    state = cast(AppState, app.state)
    config = state.config

    # 0) Metrics collector (must exist before components that record)
    state.metrics = MetricsCollector()

    # 1) Source result cache
    cache = create_cache(
        backend=config.cache.backend,
        directory=str(config.cache.directory),
        ttl_seconds=config.cache.ttl_seconds,
        max_entries=config.cache.max_entries,
        max_concurrent=config.cache.max_concurrent,
    )
    await cache.__aenter__()
    state.cache = cache
    log.info("cache_initialized", backend=config.cache.backend)

    if config.environment == "dev":
        await cache.clear()
        log.debug("cache_cleared", environment="dev")

    # 2) Shared HTTP client
    state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
        follow_redirects=config.http_follow_redirects,
    )
    log.info("http_client_initialized", timeout=config.http_timeout_seconds)

    # 3) Sources + aggregator
    state.aggregator = SourceAggregator(
        _build_sources(config, state.http_client, cache),
        timeout_seconds=config.stremio.source_timeout_seconds,
        metrics=state.metrics,
    )
    log.info("sources_initialized", sources=state.aggregator.source_names)

    # 4) Signer + scorer
    signer = PlayLinkSigner(config.play_secret)
    scorer = CandidateScorer(
        config.scoring,
        reliability=StaticReliabilityTable(config.scoring.reliability_penalties),
    )

    # 5) Debrid resolution
    _wire_resolution(state, config, signer)

    # 6) Stream list use case
    state.stream_list_uc = StreamListUseCase(
        aggregator=state.aggregator,
        score_fn=scorer,
        enrich_fn=enrich_candidate,
        signer=signer,
        config=config.stremio,
        provider_labels=state.providers.short_names(),
    )

    # 7) Periodic sweeper
    targets: dict[str, Sweepable] = {
        "resolution_cache": state.resolution_cache,
        "rate_limiter": state.limiter,
        "circuit_breaker": state.breaker,
    }
    if isinstance(cache, Sweepable):
        targets["source_cache"] = cache
    sweeper = PeriodicSweeper(targets, interval_seconds=config.sweep_interval_seconds)
    state._sweeper_task = asyncio.create_task(sweeper.run_forever())

    state.graceful_shutdown.mark_ready()
    log.info("app_startup_complete")

    try:
        yield
    finally:
        await state.graceful_shutdown.wait_for_drain(timeout=10.0)

        if state._sweeper_task is not None:
            state._sweeper_task.cancel()
            with suppress(asyncio.CancelledError):
                await state._sweeper_task
            log.info("sweeper_stopped")

        await state.stream_list_uc.aclose()

        await state.http_client.aclose()
        log.info("http_client_closed")

        await state.cache.aclose()
        log.info("cache_closed")

        log.info("app_shutdown_complete")
