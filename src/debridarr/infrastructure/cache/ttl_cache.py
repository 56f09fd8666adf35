"""In-process TTL cache with oldest-first capacity eviction.

Used for resolved play URLs and (through MemoryCacheAdapter) for
per-source results.  All operations are synchronous and never await,
so a single asyncio event loop cannot interleave two mutations.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class _Entry(Generic[V]):
    value: V
    created_at: float
    expires_at: float


class TtlCache(Generic[K, V]):
    """Expiring key/value map.

    Insertion order is tracked, so capacity eviction always drops the
    oldest write first.  Overwriting a key moves it to the newest
    position.

    Args:
        ttl_seconds: Default lifetime of an entry.
        max_entries: Capacity; 0 disables the bound.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float,
        max_entries: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self._ttl = ttl_seconds
        self._max = max_entries
        self._clock = clock
        self._data: OrderedDict[K, _Entry[V]] = OrderedDict()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]

    def get(self, key: K) -> V | None:
        """Return the live value for *key*; expired entries are dropped."""
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._data[key]
            return None
        return entry.value

    def remaining(self, key: K) -> float:
        """Seconds until *key* expires (0 when missing or expired)."""
        entry = self._data.get(key)
        if entry is None:
            return 0.0
        return max(0.0, entry.expires_at - self._clock())

    def set(self, key: K, value: V, *, ttl: float | None = None) -> None:
        now = self._clock()
        lifetime = self._ttl if ttl is None else ttl
        self._data.pop(key, None)
        self._data[key] = _Entry(value=value, created_at=now, expires_at=now + lifetime)
        self._evict_overflow()

    def delete(self, key: K) -> bool:
        return self._data.pop(key, None) is not None

    def clear(self) -> None:
        self._data.clear()

    def sweep(self) -> int:
        """Drop expired entries, then trim to capacity. Returns removed count."""
        now = self._clock()
        expired = [k for k, e in self._data.items() if e.expires_at <= now]
        for k in expired:
            del self._data[k]
        return len(expired) + self._evict_overflow()

    def _evict_overflow(self) -> int:
        if self._max <= 0:
            return 0
        removed = 0
        while len(self._data) > self._max:
            self._data.popitem(last=False)
            removed += 1
        return removed
