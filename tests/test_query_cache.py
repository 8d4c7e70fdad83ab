import asyncio

import pytest

from petfinder.clients.query_cache import QueryCache


class CountingLoader:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.value


async def test_get_loads_once_then_serves_cached():
    cache = QueryCache()
    loader = CountingLoader(["a"])
    assert await cache.get(("places",), loader) == ["a"]
    assert await cache.get(("places",), loader) == ["a"]
    assert loader.calls == 1


async def test_invalidate_by_prefix():
    cache = QueryCache()
    cache.set(("favorites", 1), [1])
    cache.set(("favorites", 2), [2])
    cache.set(("places",), [])

    assert cache.invalidate(("favorites",)) == 2
    assert ("favorites", 1) not in cache
    assert ("places",) in cache


async def test_refetch_after_invalidate():
    cache = QueryCache()
    loader = CountingLoader("v")
    await cache.get(("threads",), loader)
    cache.invalidate(("threads",))
    await cache.get(("threads",), loader)
    assert loader.calls == 2


async def test_concurrent_gets_share_one_load():
    cache = QueryCache()
    gate = asyncio.Event()
    calls = 0

    async def loader():
        nonlocal calls
        calls += 1
        await gate.wait()
        return 42

    first = asyncio.create_task(cache.get(("k",), loader))
    second = asyncio.create_task(cache.get(("k",), loader))
    await asyncio.sleep(0)
    gate.set()
    assert await first == 42
    assert await second == 42
    assert calls == 1


async def test_invalidate_during_load_discards_result():
    cache = QueryCache()
    gate = asyncio.Event()

    async def loader():
        await gate.wait()
        return "stale"

    task = asyncio.create_task(cache.get(("favorites", 1), loader))
    await asyncio.sleep(0)
    cache.invalidate(("favorites",))
    gate.set()
    assert await task == "stale"
    assert ("favorites", 1) not in cache


async def test_loader_errors_are_not_cached():
    cache = QueryCache()

    async def failing():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await cache.get(("k",), failing)
    assert ("k",) not in cache
    assert await cache.get(("k",), CountingLoader(1)) == 1


async def test_cancelled_load_hands_off_to_waiting_get():
    cache = QueryCache()
    gate = asyncio.Event()

    async def slow():
        await gate.wait()
        return "slow"

    first = asyncio.create_task(cache.get(("k",), slow))
    await asyncio.sleep(0)
    second = asyncio.create_task(cache.get(("k",), CountingLoader("fresh")))
    await asyncio.sleep(0)

    first.cancel()
    assert await asyncio.wait_for(second, timeout=1) == "fresh"
    assert first.cancelled()
    assert cache.peek(("k",)) == "fresh"


async def test_generation_entry_dropped_when_load_finishes():
    cache = QueryCache()
    gate = asyncio.Event()

    async def loader():
        await gate.wait()
        return "v"

    task = asyncio.create_task(cache.get(("favorites", 1), loader))
    await asyncio.sleep(0)
    cache.invalidate(("favorites",))
    gate.set()
    await task
    assert cache._generation == {}
