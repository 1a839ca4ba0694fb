"""
Tests for in-process single-flight execution.
"""

import asyncio

import pytest

from passdesk.core.singleflight import SingleFlight


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_execution():
    flights = SingleFlight()
    calls = 0
    release = asyncio.Event()

    async def work():
        nonlocal calls
        calls += 1
        await release.wait()
        return "done"

    waiters = [asyncio.create_task(flights.do("k", work)) for _ in range(5)]
    await asyncio.sleep(0)
    assert flights.in_flight("k")

    release.set()
    results = await asyncio.gather(*waiters)
    assert results == ["done"] * 5
    assert calls == 1
    assert not flights.in_flight("k")


@pytest.mark.asyncio
async def test_sequential_calls_run_again():
    flights = SingleFlight()
    calls = 0

    async def work():
        nonlocal calls
        calls += 1
        return calls

    assert await flights.do("k", work) == 1
    assert await flights.do("k", work) == 2


@pytest.mark.asyncio
async def test_distinct_keys_do_not_share():
    flights = SingleFlight()
    results = await asyncio.gather(
        flights.do("a", lambda: asyncio.sleep(0, result="a")),
        flights.do("b", lambda: asyncio.sleep(0, result="b")),
    )
    assert results == ["a", "b"]


@pytest.mark.asyncio
async def test_error_reaches_every_caller():
    flights = SingleFlight()
    release = asyncio.Event()

    async def work():
        await release.wait()
        raise RuntimeError("boom")

    waiters = [asyncio.create_task(flights.do("k", work)) for _ in range(3)]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*waiters, return_exceptions=True)
    assert all(isinstance(r, RuntimeError) for r in results)


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_shared_work():
    flights = SingleFlight()
    release = asyncio.Event()

    async def work():
        await release.wait()
        return 42

    first = asyncio.create_task(flights.do("k", work))
    second = asyncio.create_task(flights.do("k", work))
    await asyncio.sleep(0)

    first.cancel()
    release.set()
    assert await second == 42
    with pytest.raises(asyncio.CancelledError):
        await first
