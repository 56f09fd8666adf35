"""Tests for PeriodicSweeper."""

from __future__ import annotations

import asyncio

import pytest

from debridarr.infrastructure.cache.ttl_cache import TtlCache
from debridarr.infrastructure.maintenance import PeriodicSweeper, Sweepable


class _Table:
    def __init__(self, removed: int = 0, error: Exception | None = None) -> None:
        self.removed = removed
        self.error = error
        self.calls = 0

    def sweep(self) -> int:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.removed


class TestPeriodicSweeper:
    def test_sweep_once(self) -> None:
        a, b = _Table(2), _Table(0)
        assert PeriodicSweeper({"a": a, "b": b}).sweep_once() == {"a": 2, "b": 0}

    def test_failing_table_does_not_stop_others(self) -> None:
        bad, good = _Table(error=RuntimeError("boom")), _Table(1)
        removed = PeriodicSweeper({"bad": bad, "good": good}).sweep_once()
        assert removed == {"good": 1}
        assert good.calls == 1

    def test_tables_are_sweepable(self) -> None:
        assert isinstance(TtlCache(ttl_seconds=1), Sweepable)
        assert not isinstance(object(), Sweepable)

    @pytest.mark.asyncio()
    async def test_run_forever_sweeps_until_cancelled(self) -> None:
        table = _Table()
        task = asyncio.create_task(
            PeriodicSweeper({"t": table}, interval_seconds=0.01).run_forever()
        )
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert table.calls >= 1
