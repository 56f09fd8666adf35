"""Cache factory - builds the configured CachePort adapter."""

from __future__ import annotations

from typing import Literal

import structlog

from debridarr.domain.ports.cache import CachePort
from debridarr.infrastructure.cache.diskcache_adapter import DiskcacheAdapter
from debridarr.infrastructure.cache.memory_adapter import MemoryCacheAdapter

log = structlog.get_logger(__name__)

CacheBackend = Literal["memory", "diskcache"]


def create_cache(
    backend: CacheBackend = "memory",
    *,
    directory: str = "./.cache/debridarr",
    ttl_seconds: int = 3600,
    max_entries: int = 2000,
    max_concurrent: int = 10,
) -> CachePort:
    """Create the cache adapter for *backend*.

    Raises:
        ValueError: Unknown backend.
    """
    log.info("cache_factory_create", backend=backend, ttl=ttl_seconds)
    if backend == "memory":
        return MemoryCacheAdapter(ttl_seconds=ttl_seconds, max_entries=max_entries)
    if backend == "diskcache":
        return DiskcacheAdapter(
            directory=directory,
            ttl_seconds=ttl_seconds,
            max_concurrent=max_concurrent,
        )
    raise ValueError(
        f"Unknown cache backend: {backend!r}. Must be 'memory' or 'diskcache'."
    )
