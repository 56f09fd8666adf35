"""Tests for SingleFlight."""

from __future__ import annotations

import asyncio

import pytest

from debridarr.infrastructure.singleflight import SingleFlight, SingleFlightAborted


class TestSingleFlight:
    @pytest.mark.asyncio()
    async def test_concurrent_callers_share_one_execution(self) -> None:
        flights: SingleFlight[str, str] = SingleFlight()
        calls = 0
        release = asyncio.Event()

        async def work() -> str:
            nonlocal calls
            calls += 1
            await release.wait()
            return "https://cdn.example.com/file.mkv"

        tasks = [asyncio.create_task(flights.do("k", work)) for _ in range(5)]
        await asyncio.sleep(0)
        assert flights.in_flight("k")
        release.set()
        results = await asyncio.gather(*tasks)

        assert calls == 1
        assert {url for url, _ in results} == {"https://cdn.example.com/file.mkv"}
        assert sorted(shared for _, shared in results) == [False, True, True, True, True]
        assert len(flights) == 0

    @pytest.mark.asyncio()
    async def test_different_keys_run_separately(self) -> None:
        flights: SingleFlight[str, int] = SingleFlight()
        calls = 0

        async def work() -> int:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0)
            return calls

        await asyncio.gather(flights.do("a", work), flights.do("b", work))
        assert calls == 2

    @pytest.mark.asyncio()
    async def test_leader_error_reaches_waiters(self) -> None:
        flights: SingleFlight[str, str] = SingleFlight()
        release = asyncio.Event()

        async def work() -> str:
            await release.wait()
            raise RuntimeError("provider down")

        leader = asyncio.create_task(flights.do("k", work))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(flights.do("k", work))
        await asyncio.sleep(0)
        release.set()

        with pytest.raises(RuntimeError, match="provider down"):
            await leader
        with pytest.raises(RuntimeError, match="provider down"):
            await waiter
        assert not flights.in_flight("k")

    @pytest.mark.asyncio()
    async def test_waiter_cancellation_does_not_cancel_leader(self) -> None:
        flights: SingleFlight[str, str] = SingleFlight()
        release = asyncio.Event()

        async def work() -> str:
            await release.wait()
            return "done"

        leader = asyncio.create_task(flights.do("k", work))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(flights.do("k", work))
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        release.set()
        assert await leader == ("done", False)

    @pytest.mark.asyncio()
    async def test_leader_cancellation_aborts_waiters(self) -> None:
        flights: SingleFlight[str, str] = SingleFlight()

        async def work() -> str:
            await asyncio.Event().wait()
            return "never"

        leader = asyncio.create_task(flights.do("k", work))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(flights.do("k", work))
        await asyncio.sleep(0)
        leader.cancel()

        with pytest.raises(SingleFlightAborted):
            await waiter
        assert not flights.in_flight("k")

    @pytest.mark.asyncio()
    async def test_key_reusable_after_completion(self) -> None:
        flights: SingleFlight[str, int] = SingleFlight()
        counter = iter(range(10))

        async def work() -> int:
            return next(counter)

        assert await flights.do("k", work) == (0, False)
        assert await flights.do("k", work) == (1, False)

    @pytest.mark.asyncio()
    async def test_snapshot(self) -> None:
        flights: SingleFlight[str, str] = SingleFlight()
        release = asyncio.Event()

        async def work() -> str:
            await release.wait()
            return "x"

        tasks = [asyncio.create_task(flights.do("k", work)) for _ in range(3)]
        await asyncio.sleep(0)
        snap = flights.snapshot()
        assert snap["in_flight"] == 1
        assert snap["waiters"] == 2
        release.set()
        await asyncio.gather(*tasks)
