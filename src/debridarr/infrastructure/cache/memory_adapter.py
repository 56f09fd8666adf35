"""CachePort adapter over the in-process TtlCache."""

from __future__ import annotations

from typing import Any, Optional

import structlog

from debridarr.infrastructure.cache.ttl_cache import TtlCache

log = structlog.get_logger(__name__)


class MemoryCacheAdapter:
    """Process-local cache; contents are lost on restart.

    Args:
        ttl_seconds: Default TTL for ``set()`` without explicit value.
        max_entries: Oldest entries are evicted beyond this size.
    """

    def __init__(self, ttl_seconds: int = 3600, max_entries: int = 2000) -> None:
        self.default_ttl = ttl_seconds
        self._cache: TtlCache[str, Any] = TtlCache(
            ttl_seconds=ttl_seconds, max_entries=max_entries
        )
        log.info(
            "memory_cache_init",
            default_ttl=ttl_seconds,
            max_entries=max_entries,
        )

    async def __aenter__(self) -> MemoryCacheAdapter:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self._cache.clear()

    async def get(self, key: str) -> Optional[Any]:
        value = self._cache.get(key)
        log.debug("cache_get", key=key, hit=value is not None)
        return value

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        if ttl is not None and ttl <= 0:
            return
        self._cache.set(key, value, ttl=ttl)

    async def delete(self, key: str) -> bool:
        return self._cache.delete(key)

    async def clear(self) -> None:
        self._cache.clear()

    def sweep(self) -> int:
        return self._cache.sweep()
