"""Shared fixtures for integration tests.

These tests use real infrastructure components (DiskcacheAdapter,
AddonStreamSource, SourceAggregator, the FastAPI lifespan) with mocked
HTTP via respx.
"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from debridarr.infrastructure.cache.diskcache_adapter import DiskcacheAdapter


@pytest.fixture()
async def http_client() -> httpx.AsyncClient:
    """Real httpx.AsyncClient for use with respx mocking."""
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture()
async def diskcache(tmp_path: Path) -> DiskcacheAdapter:
    """Real DiskcacheAdapter backed by tmp_path (auto-cleaned)."""
    adapter = DiskcacheAdapter(
        directory=tmp_path / "cache",
        ttl_seconds=3600,
        max_concurrent=5,
    )
    async with adapter:
        yield adapter
