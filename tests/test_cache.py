"""Tests for the grid-cell environment cache."""

import asyncio

import pytest

from health_maps.cache import EnvironmentCache
from health_maps.exceptions import ProviderError
from health_maps.models import Coordinate, EnvironmentReading


class SlowFetcher:
    """Fetcher that yields to the loop before answering, counting calls."""

    def __init__(self, pm25=42.0, error=None):
        self.pm25 = pm25
        self.error = error
        self.calls = []

    async def __call__(self, coord):
        self.calls.append(coord)
        await asyncio.sleep(0.01)
        if self.error is not None:
            raise self.error
        return EnvironmentReading(pm25=self.pm25)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_grid_key_uses_three_decimals():
    assert Coordinate(lon=77.1234, lat=12.5678).grid_key() == "77.123,12.568"


def test_concurrent_lookups_in_one_cell_fetch_once():
    """Two nearby points looked up at the same time share one provider call."""
    fetcher = SlowFetcher()
    first = Coordinate(lon=77.1234, lat=12.5678)
    second = Coordinate(lon=77.1231, lat=12.5681)
    assert first.grid_key() == second.grid_key()

    async def run():
        cache = EnvironmentCache(fetcher)
        return await asyncio.gather(cache.get_or_fetch(first), cache.get_or_fetch(second))

    readings = asyncio.run(run())

    assert len(fetcher.calls) == 1
    assert readings == [EnvironmentReading(pm25=42.0)] * 2


def test_many_concurrent_lookups_fetch_once_per_cell():
    fetcher = SlowFetcher()
    coords = [Coordinate(lon=75.8 + (i % 3) * 0.01, lat=25.2) for i in range(30)]

    async def run():
        cache = EnvironmentCache(fetcher)
        await asyncio.gather(*[cache.get_or_fetch(c) for c in coords])
        return cache

    cache = asyncio.run(run())

    assert len(fetcher.calls) == 3
    assert cache.stats()['misses'] == 3
    assert cache.stats()['hits'] == 27
    assert cache.stats()['inflight'] == 0


def test_cached_reading_skips_fetch():
    fetcher = SlowFetcher()
    coord = Coordinate(lon=75.8333, lat=25.2023)

    async def run():
        cache = EnvironmentCache(fetcher)
        await cache.get_or_fetch(coord)
        return await cache.get_or_fetch(coord)

    assert asyncio.run(run()).pm25 == 42.0
    assert len(fetcher.calls) == 1


def test_failed_fetch_reaches_every_waiter_and_is_not_cached():
    fetcher = SlowFetcher(error=ProviderError("quota exceeded"))
    coord = Coordinate(lon=75.8333, lat=25.2023)

    async def run():
        cache = EnvironmentCache(fetcher)
        results = await asyncio.gather(
            cache.get_or_fetch(coord), cache.get_or_fetch(coord),
            return_exceptions=True
        )
        fetcher.error = None
        retry = await cache.get_or_fetch(coord)
        return results, retry

    results, retry = asyncio.run(run())

    assert all(isinstance(r, ProviderError) for r in results)
    assert retry.pm25 == 42.0
    assert len(fetcher.calls) == 2


def test_cancelled_caller_does_not_cancel_shared_fetch():
    coord = Coordinate(lon=75.8333, lat=25.2023)

    async def run():
        gate = asyncio.Event()

        async def fetcher(c):
            await gate.wait()
            return EnvironmentReading(pm25=7.0)

        cache = EnvironmentCache(fetcher)
        first = asyncio.ensure_future(cache.get_or_fetch(coord))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(cache.get_or_fetch(coord))
        await asyncio.sleep(0)

        first.cancel()
        gate.set()
        reading = await second
        return first, reading, len(cache)

    first, reading, size = asyncio.run(run())

    assert first.cancelled()
    assert reading.pm25 == 7.0
    assert size == 1


def test_least_recently_used_entries_are_evicted():
    fetcher = SlowFetcher()
    a = Coordinate(lon=1.0, lat=1.0)
    b = Coordinate(lon=2.0, lat=2.0)
    c = Coordinate(lon=3.0, lat=3.0)

    async def run():
        cache = EnvironmentCache(fetcher, max_entries=2)
        await cache.get_or_fetch(a)
        await cache.get_or_fetch(b)
        await cache.get_or_fetch(a)
        await cache.get_or_fetch(c)
        await cache.get_or_fetch(a)
        await cache.get_or_fetch(b)
        return cache

    cache = asyncio.run(run())

    assert len(cache) == 2
    assert [call.lon for call in fetcher.calls] == [1.0, 2.0, 3.0, 2.0]


def test_expired_entries_are_refetched():
    fetcher = SlowFetcher()
    clock = FakeClock()
    coord = Coordinate(lon=75.8333, lat=25.2023)

    async def run():
        cache = EnvironmentCache(fetcher, ttl_seconds=60, clock=clock)
        await cache.get_or_fetch(coord)
        clock.now = 59
        await cache.get_or_fetch(coord)
        clock.now = 121
        await cache.get_or_fetch(coord)

    asyncio.run(run())

    assert len(fetcher.calls) == 2


def test_clear_drains_entries():
    fetcher = SlowFetcher()

    async def run():
        cache = EnvironmentCache(fetcher)
        await cache.get_or_fetch(Coordinate(lon=1.0, lat=1.0))
        cache.clear()
        await cache.get_or_fetch(Coordinate(lon=1.0, lat=1.0))
        return cache

    cache = asyncio.run(run())

    assert len(cache) == 1
    assert len(fetcher.calls) == 2


def test_max_entries_must_be_positive():
    with pytest.raises(ValueError):
        EnvironmentCache(SlowFetcher(), max_entries=0)
