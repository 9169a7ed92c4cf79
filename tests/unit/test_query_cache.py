"""
Query Cache Unit Tests

Freshness window, single-flight de-duplication, forced refresh and
cancellation, using a fake clock.
"""

import asyncio

import pytest

from resummarize.schemas.ai import QueryStatus
from resummarize.services.cache import QueryCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class CountingFetcher:
    def __init__(self, delay: float = 0.0) -> None:
        self.calls = 0
        self.delay = delay

    async def __call__(self) -> str:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return f"result-{self.calls}"


@pytest.mark.asyncio
async def test_fresh_entry_is_served_without_refetch():
    clock = FakeClock()
    cache = QueryCache(stale_seconds=600, clock=clock)
    fetcher = CountingFetcher()

    assert await cache.fetch(("k",), fetcher) == "result-1"
    clock.now = 599
    assert await cache.fetch(("k",), fetcher) == "result-1"
    clock.now = 601
    assert await cache.fetch(("k",), fetcher) == "result-2"
    assert fetcher.calls == 2


@pytest.mark.asyncio
async def test_concurrent_fetches_share_one_request():
    cache = QueryCache(stale_seconds=600)
    fetcher = CountingFetcher(delay=0.01)

    results = await asyncio.gather(*(cache.fetch(("k",), fetcher) for _ in range(5)))

    assert results == ["result-1"] * 5
    assert fetcher.calls == 1


@pytest.mark.asyncio
async def test_force_refresh_discards_previous_result():
    cache = QueryCache(stale_seconds=600)
    fetcher = CountingFetcher()

    await cache.fetch(("k",), fetcher)
    assert await cache.fetch(("k",), fetcher, force=True) == "result-2"
    assert cache.get_data(("k",)) == "result-2"


@pytest.mark.asyncio
async def test_error_is_tagged_and_next_call_retries():
    cache = QueryCache(stale_seconds=600)
    attempts = 0

    async def flaky() -> str:
        nonlocal attempts
        attempts += 1
        if attempts == 1:
            raise RuntimeError("boom")
        return "ok"

    failed = await cache.query(("k",), flaky)
    assert failed.status is QueryStatus.ERROR
    assert failed.error_type == "RuntimeError"
    assert cache.result(("k",)).status is QueryStatus.ERROR

    ok = await cache.query(("k",), flaky)
    assert ok.status is QueryStatus.SUCCESS
    assert ok.data == "ok"


@pytest.mark.asyncio
async def test_cancelled_request_does_not_overwrite_newer_data():
    cache = QueryCache(stale_seconds=None)
    release = asyncio.Event()

    async def slow() -> str:
        await release.wait()
        return "stale"

    task = asyncio.create_task(cache.fetch(("k",), slow))
    await asyncio.sleep(0)
    cache.cancel(("k",))
    cache.set_data(("k",), "optimistic")
    release.set()

    assert await task == "stale"
    assert cache.get_data(("k",)) == "optimistic"


@pytest.mark.asyncio
async def test_invalidate_keeps_data_readable_but_stale():
    cache = QueryCache(stale_seconds=None)
    fetcher = CountingFetcher()
    await cache.fetch(("k",), fetcher)

    cache.invalidate(("k",))

    assert cache.get_data(("k",)) == "result-1"
    assert not cache.is_fresh(("k",))
    assert await cache.fetch(("k",), fetcher) == "result-2"


def test_snapshot_and_restore():
    cache = QueryCache()
    assert cache.result(("missing",)).status is QueryStatus.IDLE

    cache.set_data(("k",), [1, 2])
    snap = cache.snapshot(("k",))
    cache.set_data(("k",), [1])
    cache.restore(("k",), snap)

    assert cache.get_data(("k",)) == [1, 2]

    cache.restore(("k",), None)
    assert cache.get_entry(("k",)) is None


@pytest.mark.asyncio
async def test_expired_entries_are_evicted_on_next_fetch():
    clock = FakeClock()
    cache = QueryCache(stale_seconds=600, clock=clock)
    fetcher = CountingFetcher()
    for i in range(100):
        await cache.fetch(("summary", i), fetcher)
    assert len(cache) == 100

    clock.now = 600
    await cache.fetch(("summary", "new"), fetcher)

    assert len(cache) == 1
    assert cache.result(("summary", 0)).status is QueryStatus.IDLE

    cache.clear()
    assert len(cache) == 0
