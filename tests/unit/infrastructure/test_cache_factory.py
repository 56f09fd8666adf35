"""Tests for create_cache and the diskcache backend."""

from __future__ import annotations

from pathlib import Path

import pytest

from debridarr.infrastructure.cache import create_cache
from debridarr.infrastructure.cache.diskcache_adapter import DiskcacheAdapter
from debridarr.infrastructure.cache.memory_adapter import MemoryCacheAdapter


class TestCreateCache:
    def test_memory_backend(self) -> None:
        assert isinstance(create_cache("memory"), MemoryCacheAdapter)

    def test_diskcache_backend(self, tmp_path: Path) -> None:
        cache = create_cache("diskcache", directory=str(tmp_path))
        assert isinstance(cache, DiskcacheAdapter)

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError, match="Unknown cache backend"):
            create_cache("redis")  # type: ignore[arg-type]


class TestDiskcacheAdapter:
    @pytest.mark.asyncio()
    async def test_roundtrip(self, tmp_path: Path) -> None:
        async with DiskcacheAdapter(directory=tmp_path, ttl_seconds=60) as cache:
            await cache.set("source:torrentio:movie:tt1", [{"infoHash": "abc"}])
            assert await cache.get("source:torrentio:movie:tt1") == [{"infoHash": "abc"}]
            assert await cache.delete("source:torrentio:movie:tt1") is True
            assert await cache.get("source:torrentio:movie:tt1") is None

    @pytest.mark.asyncio()
    async def test_use_before_open_raises(self, tmp_path: Path) -> None:
        cache = DiskcacheAdapter(directory=tmp_path)
        with pytest.raises(RuntimeError, match="not initialized"):
            await cache.get("k")

    @pytest.mark.asyncio()
    async def test_non_positive_ttl_skips_write(self, tmp_path: Path) -> None:
        async with DiskcacheAdapter(directory=tmp_path) as cache:
            await cache.set("k", "v", ttl=0)
            assert await cache.get("k") is None
