"""Click-time resolution use case.

Signed play link -> guards (signature, credential, rate limit, breaker)
-> resolution cache -> single-flight upload/poll/select/unlock workflow
-> direct URL for a 302 redirect.
"""

from __future__ import annotations

import asyncio
import time
from typing import Protocol

import structlog

from debridarr.domain.entities.errors import (
    CredentialRequired,
    DebridApiError,
    IntegrityError,
    PermanentProviderError,
    RateLimited,
    ResolutionTimeout,
    ResolveError,
    ServiceUnavailable,
    StillCaching,
    TransientProviderError,
    UnknownProvider,
)
from debridarr.domain.entities.resolution import (
    PlayReference,
    ResolutionCacheEntry,
    ResolveOutcome,
)
from debridarr.domain.ports.debrid_provider import DebridProviderPort
from debridarr.infrastructure.cache.ttl_cache import TtlCache
from debridarr.infrastructure.circuit_breaker import CredentialCircuitBreaker
from debridarr.infrastructure.common.rate_limiter import SlidingWindowRateLimiter
from debridarr.infrastructure.debrid.file_selector import select_file
from debridarr.infrastructure.debrid.poller import TorrentPoller
from debridarr.infrastructure.debrid.registry import DebridProviderRegistry
from debridarr.infrastructure.metrics import MetricsCollector
from debridarr.infrastructure.security.play_signer import (
    PlayLinkSigner,
    credential_fingerprint,
)
from debridarr.infrastructure.singleflight import SingleFlight, SingleFlightAborted

log = structlog.get_logger(__name__)

# Poller verdicts about a single torrent (dead, error); not the credential.
_TORRENT_FAULT_PREFIX = "torrent_"


def _counts_against_credential(exc: PermanentProviderError) -> bool:
    return not exc.code.startswith(_TORRENT_FAULT_PREFIX)


class _ResolveConfig(Protocol):
    resolve_timeout_seconds: float
    min_video_size_mb: int


class PlayResolveUseCase:
    """Resolve a play link into a direct, time-limited stream URL.

    Flow:
    1. Verify the HMAC signature (403 on mismatch, before anything else).
    2. No credential: bare magnet redirect for info-hash links, else 401.
    3. Look up the provider, then consult the per-credential rate limiter
       and circuit breaker.
    4. Serve an unexpired resolution cache entry when present.
    5. Otherwise join or start the single-flight workflow for the key,
       bounded by the overall resolve timeout.
    """

    def __init__(
        self,
        *,
        signer: PlayLinkSigner,
        providers: DebridProviderRegistry,
        limiter: SlidingWindowRateLimiter,
        breaker: CredentialCircuitBreaker,
        cache: TtlCache[str, ResolutionCacheEntry],
        flights: SingleFlight[str, ResolutionCacheEntry],
        poller: TorrentPoller,
        config: _ResolveConfig,
        metrics: MetricsCollector | None = None,
        clock=time.time,
    ) -> None:
        self._signer = signer
        self._providers = providers
        self._limiter = limiter
        self._breaker = breaker
        self._cache = cache
        self._flights = flights
        self._poller = poller
        self._timeout = config.resolve_timeout_seconds
        self._min_size = config.min_video_size_mb * 1024 * 1024
        self._metrics = metrics
        self._clock = clock

    async def execute(self, ref: PlayReference, signature: str | None) -> ResolveOutcome:
        start_ns = time.perf_counter_ns()
        try:
            outcome = await self._execute(ref, signature)
        except ResolveError as exc:
            self._record(start_ns, error_kind=exc.kind)
            raise
        except Exception:
            self._record(start_ns, error_kind="internal")
            raise
        self._record(
            start_ns,
            cached=outcome.cached,
            shared=outcome.shared,
            magnet_fallback=outcome.magnet_fallback,
        )
        return outcome

    def _record(self, start_ns: int, **kwargs) -> None:
        if self._metrics is not None:
            self._metrics.record_resolution(time.perf_counter_ns() - start_ns, **kwargs)

    async def _execute(self, ref: PlayReference, signature: str | None) -> ResolveOutcome:
        if not self._signer.verify(ref, signature):
            raise IntegrityError("play link signature missing or invalid")

        if not ref.credential:
            if ref.info_hash:
                return ResolveOutcome(url=ref.magnet_uri(), magnet_fallback=True)
            raise CredentialRequired("a debrid credential is required for this link")

        provider = self._providers.get(ref.provider)
        if provider is None:
            raise UnknownProvider(f"unknown debrid provider {ref.provider!r}")

        fingerprint = credential_fingerprint(ref.credential)
        limit_key = f"{provider.key}:{fingerprint}"
        if not self._limiter.allow(limit_key):
            raise RateLimited(
                "too many resolutions for this credential",
                retry_after=self._limiter.retry_after(limit_key),
            )
        if not self._breaker.allow(limit_key):
            raise ServiceUnavailable(f"{provider.key} temporarily disabled for this credential")

        key = f"{provider.key}:{ref.cache_key}"
        entry = self._cache.get(key)
        if entry is not None:
            log.info(
                "resolution_cache_hit",
                provider=provider.key,
                credential_fp=fingerprint,
                torrent=ref.torrent_ref[:40],
            )
            return ResolveOutcome(url=entry.url, max_age=self._max_age(key), cached=True)

        log.info(
            "resolution_start",
            provider=provider.key,
            credential_fp=fingerprint,
            torrent=ref.torrent_ref[:40],
            file_index=ref.file_index,
            filename=ref.filename or None,
            joining=self._flights.in_flight(key),
        )
        try:
            entry, shared = await self._flights.do(
                key, lambda: self._resolve_bounded(provider, ref, key, limit_key)
            )
        except SingleFlightAborted as exc:
            raise TransientProviderError(str(exc), code="aborted") from exc

        return ResolveOutcome(url=entry.url, max_age=self._max_age(key), shared=shared)

    def _max_age(self, key: str) -> int:
        return max(0, int(self._cache.remaining(key)))

    async def _resolve_bounded(
        self,
        provider: DebridProviderPort,
        ref: PlayReference,
        key: str,
        breaker_key: str,
    ) -> ResolutionCacheEntry:
        # Inside the flight, so joined callers see the same timeout.
        try:
            return await asyncio.wait_for(
                self._resolve(provider, ref, key, breaker_key), timeout=self._timeout
            )
        except TimeoutError:
            raise ResolutionTimeout(
                f"resolution did not finish within {self._timeout:g}s"
            ) from None

    async def _resolve(
        self,
        provider: DebridProviderPort,
        ref: PlayReference,
        key: str,
        breaker_key: str,
    ) -> ResolutionCacheEntry:
        """Upload, poll, pick a file, unlock and cache; runs once per key."""
        credential = ref.credential or ""
        try:
            torrent_id = await provider.upload(ref.magnet_uri(), credential)
            status = await self._poller.wait_ready(provider, torrent_id, credential)

            season, episode = ref.season_episode
            chosen = select_file(
                status.files,
                target_filename=ref.filename or None,
                season=season,
                episode=episode,
                file_index=ref.file_index,
                min_size=self._min_size,
            )
            if chosen is None:
                raise StillCaching("no playable file available yet")

            try:
                url = await provider.unlock(chosen.link, credential)
            except DebridApiError as exc:
                log.warning(
                    "unlock_failed_using_raw_link",
                    provider=provider.key,
                    code=exc.code,
                    file=chosen.name,
                )
                url = chosen.link
        except PermanentProviderError as exc:
            if _counts_against_credential(exc):
                self._breaker.record_failure(breaker_key)
            raise
        except DebridApiError as exc:
            self._breaker.record_failure(breaker_key)
            raise TransientProviderError(str(exc), code=exc.code) from exc

        entry = ResolutionCacheEntry(
            key=key, url=url, created_at=self._clock(), filename=chosen.name
        )
        self._cache.set(key, entry)
        self._breaker.record_success(breaker_key)
        log.info(
            "resolution_complete",
            provider=provider.key,
            torrent_id=torrent_id,
            file=chosen.name,
            size=chosen.size,
        )
        return entry
