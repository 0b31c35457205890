"""Tests for fleetmatch.cache module."""

import asyncio

import pytest

from fleetmatch import DriverNameRecord, SystemName
from fleetmatch.cache import DEFAULT_TTL_SECONDS, DriverRecordCache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class CountingLoader:
    """Loader returning a fixed roster and counting fetches."""

    def __init__(self, records=None, fail=False) -> None:
        self.records = records if records is not None else [
            DriverNameRecord('d1', SystemName.LYTX, 'Mike Smith', 'Michael', 'Smith'),
        ]
        self.fail = fail
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(0)
        if self.fail:
            raise ConnectionError('roster unavailable')
        return list(self.records)


class TestDriverRecordCache:
    """Tests for TTL-based roster caching."""

    def test_first_read_fetches(self):
        loader = CountingLoader()
        cache = DriverRecordCache(loader, clock=FakeClock())
        records = asyncio.run(cache.get())
        assert loader.calls == 1
        assert records[0].driver_id == 'd1'

    def test_reads_within_ttl_use_cache(self):
        loader = CountingLoader()
        clock = FakeClock()
        cache = DriverRecordCache(loader, clock=clock)

        async def scenario():
            await cache.get()
            clock.now += DEFAULT_TTL_SECONDS - 1
            await cache.get()

        asyncio.run(scenario())
        assert loader.calls == 1

    def test_expired_snapshot_refetched(self):
        loader = CountingLoader()
        clock = FakeClock()
        cache = DriverRecordCache(loader, clock=clock)

        async def scenario():
            await cache.get()
            clock.now += DEFAULT_TTL_SECONDS + 1
            await cache.get()

        asyncio.run(scenario())
        assert loader.calls == 2

    def test_clear_forces_exactly_one_refetch(self):
        loader = CountingLoader()
        cache = DriverRecordCache(loader, clock=FakeClock())

        async def scenario():
            await cache.get()
            cache.clear()
            await cache.get()
            await cache.get()

        asyncio.run(scenario())
        assert loader.calls == 2

    def test_concurrent_readers_share_one_fetch(self):
        loader = CountingLoader()
        cache = DriverRecordCache(loader, clock=FakeClock())

        async def scenario():
            return await asyncio.gather(*(cache.get() for _ in range(10)))

        snapshots = asyncio.run(scenario())
        assert loader.calls == 1
        assert all(s is snapshots[0] for s in snapshots)

    def test_snapshot_is_immutable(self):
        cache = DriverRecordCache(CountingLoader(), clock=FakeClock())
        assert isinstance(asyncio.run(cache.get()), tuple)

    def test_empty_roster_is_cached(self):
        loader = CountingLoader(records=[])
        cache = DriverRecordCache(loader, clock=FakeClock())

        async def scenario():
            await cache.get()
            return await cache.get()

        assert asyncio.run(scenario()) == ()
        assert loader.calls == 1

    def test_loader_error_propagates(self):
        cache = DriverRecordCache(CountingLoader(fail=True), clock=FakeClock())
        with pytest.raises(ConnectionError):
            asyncio.run(cache.get())
        assert not cache.is_fresh()

    def test_failed_refresh_keeps_previous_snapshot(self):
        loader = CountingLoader()
        clock = FakeClock()
        cache = DriverRecordCache(loader, clock=clock)
        asyncio.run(cache.get())

        loader.fail = True
        clock.now += DEFAULT_TTL_SECONDS + 1
        with pytest.raises(ConnectionError):
            asyncio.run(cache.get())
        assert cache._records[0].driver_id == 'd1'

    def test_age(self):
        clock = FakeClock()
        cache = DriverRecordCache(CountingLoader(), clock=clock)
        assert cache.age() == float('inf')
        asyncio.run(cache.get())
        clock.now += 42
        assert cache.age() == 42

    def test_reused_across_event_loops(self):
        loader = CountingLoader()
        cache = DriverRecordCache(loader, clock=FakeClock())

        async def scenario():
            return await asyncio.gather(*(cache.get() for _ in range(3)))

        asyncio.run(scenario())
        cache.clear()
        snapshots = asyncio.run(scenario())
        assert loader.calls == 2
        assert all(s[0].driver_id == 'd1' for s in snapshots)
