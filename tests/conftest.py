"""Shared test fixtures for the Debridarr test suite."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from debridarr.domain.entities.resolution import PlayReference
from debridarr.infrastructure.security import PlayLinkSigner

# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def play_ref() -> PlayReference:
    """Signed-link payload for a season-pack episode."""
    return PlayReference(
        info_hash="a" * 40,
        file_index=3,
        content_id="tt0944947:1:5",
        filename="Show.S01E05.1080p.WEB-DL.mkv",
        credential="user-api-key",
        provider="alldebrid",
    )


# ---------------------------------------------------------------------------
# Infrastructure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def signer() -> PlayLinkSigner:
    return PlayLinkSigner("test-secret")


@pytest.fixture()
def mock_cache() -> AsyncMock:
    """Mock CachePort (always a miss)."""
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock()
    cache.delete = AsyncMock(return_value=True)
    cache.clear = AsyncMock()
    cache.aclose = AsyncMock()
    return cache
