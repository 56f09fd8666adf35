"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from debridarr.infrastructure.config import AppConfig
from debridarr.infrastructure.graceful_shutdown import GracefulShutdown

if TYPE_CHECKING:
    import asyncio

    from debridarr.application.use_cases.play_resolve import PlayResolveUseCase
    from debridarr.application.use_cases.stream_list import StreamListUseCase
    from debridarr.domain.entities.resolution import ResolutionCacheEntry
    from debridarr.domain.ports import CachePort
    from debridarr.infrastructure.cache.ttl_cache import TtlCache
    from debridarr.infrastructure.circuit_breaker import CredentialCircuitBreaker
    from debridarr.infrastructure.common.rate_limiter import SlidingWindowRateLimiter
    from debridarr.infrastructure.debrid import DebridProviderRegistry
    from debridarr.infrastructure.metrics import MetricsCollector
    from debridarr.infrastructure.singleflight import SingleFlight
    from debridarr.infrastructure.sources import SourceAggregator


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    cache: CachePort
    http_client: httpx.AsyncClient
    metrics: MetricsCollector

    # Candidate side
    aggregator: SourceAggregator
    stream_list_uc: StreamListUseCase

    # Resolution side (process-wide shared tables)
    providers: DebridProviderRegistry
    limiter: SlidingWindowRateLimiter
    breaker: CredentialCircuitBreaker
    resolution_cache: TtlCache[str, ResolutionCacheEntry]
    flights: SingleFlight[str, ResolutionCacheEntry]
    play_resolve_uc: PlayResolveUseCase

    # Periodic eviction of expired/stale table entries
    _sweeper_task: asyncio.Task | None

    # Graceful shutdown (request tracking + drain)
    graceful_shutdown: GracefulShutdown
