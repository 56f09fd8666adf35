"""Cache port used for per-source result caching."""

from __future__ import annotations

from typing import Any, Protocol


class CachePort(Protocol):
    """Async key-value store with per-entry TTL.

    Adapters:
      - MemoryCacheAdapter (process-local, lost on restart)
      - DiskcacheAdapter (SQLite file, survives restarts)

    Adapters are opened with ``async with cache:`` (or an explicit
    ``__aenter__``) and released via ``aclose()``.
    """

    async def get(self, key: str) -> Any:
        """Return the stored value, or None when missing or expired."""
        ...

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        """Store *value*; ``ttl`` in seconds falls back to the adapter default."""
        ...

    async def delete(self, key: str) -> bool: ...

    async def clear(self) -> None: ...

    async def aclose(self) -> None: ...

    async def __aenter__(self) -> CachePort: ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None: ...
