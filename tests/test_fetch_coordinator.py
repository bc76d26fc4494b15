"""Tests for FetchCoordinator: in-flight guard, paging and cache fallback."""
from __future__ import annotations

import asyncio

from helpers import make_items
from listsync.core.exceptions.exceptions import (
    CacheIOError,
    FetchTimeoutError,
    NetworkFetchError,
    OfflineNoCacheError,
    RemoteRejectedError,
)
from listsync.schemas.page import Page
from listsync.schemas.resource_key import ResourceKey
from listsync.services.cache_store import CacheStore
from listsync.services.fetch_coordinator import FetchCoordinator

KEY = ResourceKey.of("gallery", {"status": "approved"})


def page_of(items, page=1, total_pages=1):
    return Page(items=items, page_number=page, page_size=10, total_pages=total_pages)


class CountingFetch:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def __call__(self, page):
        self.calls.append(page)
        if self.error is not None:
            raise self.error
        return self.result


class BrokenCache(CacheStore):
    def get(self, key):
        raise CacheIOError("read", "disk unplugged")

    def put(self, key, items):
        raise CacheIOError("write", "disk unplugged")


class TestInFlightGuard:

    def test_concurrent_loads_invoke_fetch_once(self, coordinator: FetchCoordinator):
        """P3: the second concurrent call is dropped as busy."""
        calls = []

        async def scenario():
            gate = asyncio.Event()

            async def slow_fetch(page):
                calls.append(page)
                await gate.wait()
                return page_of(make_items(2))

            first = asyncio.create_task(coordinator.load(KEY, 1, slow_fetch))
            await asyncio.sleep(0)
            assert coordinator.is_busy(KEY)

            second = await coordinator.load(KEY, 1, slow_fetch)
            gate.set()
            return await first, second

        first, second = asyncio.run(scenario())
        assert calls == [1]
        assert second.busy is True
        assert second.items == []
        assert first.busy is False
        assert [i["id"] for i in first.items] == ["i1", "i2"]
        assert not coordinator.is_busy(KEY)

    def test_other_keys_are_independent(self, coordinator: FetchCoordinator):
        other = ResourceKey.of("audio")

        async def scenario():
            gate = asyncio.Event()

            async def slow_fetch(page):
                await gate.wait()
                return page_of(make_items(1))

            first = asyncio.create_task(coordinator.load(KEY, 1, slow_fetch))
            await asyncio.sleep(0)
            result = await coordinator.load(other, 1, CountingFetch(page_of(make_items(1, "a"))))
            gate.set()
            await first
            return result

        result = asyncio.run(scenario())
        assert result.busy is False
        assert result.items == [{"id": "a1", "title": "item a1"}]

    def test_guard_released_after_error(self, coordinator: FetchCoordinator):
        fetch = CountingFetch(error=RuntimeError("bug"))
        asyncio.run(coordinator.load(KEY, 2, fetch))
        assert not coordinator.is_busy(KEY)
        asyncio.run(coordinator.load(KEY, 2, fetch))
        assert fetch.calls == [2, 2]


class TestOnline:

    def test_page_one_success_replaces_cache(self, coordinator: FetchCoordinator, cache: CacheStore):
        cache.put(KEY, make_items(3, prefix="old"))
        result = asyncio.run(coordinator.load(KEY, 1, CountingFetch(page_of(make_items(12), total_pages=4))))

        assert result.degraded is False
        assert result.appended is False
        assert result.has_more is True
        assert len(result.items) == 12
        assert [i["id"] for i in cache.get(KEY)] == [f"i{k}" for k in range(1, 11)]

    def test_later_pages_append_and_leave_cache_alone(self, coordinator: FetchCoordinator, cache: CacheStore):
        cache.put(KEY, make_items(2))
        result = asyncio.run(coordinator.load(KEY, 2, CountingFetch(page_of(make_items(2, "n"), page=2, total_pages=2))))

        assert result.appended is True
        assert result.has_more is False
        assert [i["id"] for i in cache.get(KEY)] == ["i1", "i2"]
        assert coordinator.state(KEY).current_page == 2

    def test_network_error_on_page_one_falls_back_to_cache(self, coordinator: FetchCoordinator, cache: CacheStore):
        cache.put(KEY, make_items(2))
        result = asyncio.run(coordinator.load(KEY, 1, CountingFetch(error=NetworkFetchError("gallery", "reset"))))

        assert result.degraded is True
        assert result.error is None
        assert result.has_more is False
        assert [i["id"] for i in result.items] == ["i1", "i2"]

    def test_network_error_on_page_one_without_cache(self, coordinator: FetchCoordinator):
        result = asyncio.run(coordinator.load(KEY, 1, CountingFetch(error=NetworkFetchError("gallery", "reset"))))
        assert result.degraded is True
        assert result.items == []
        assert isinstance(result.error, NetworkFetchError)

    def test_error_on_later_page_is_returned_without_items(self, coordinator: FetchCoordinator, cache: CacheStore):
        cache.put(KEY, make_items(2))
        error = NetworkFetchError("gallery", "reset")
        result = asyncio.run(coordinator.load(KEY, 2, CountingFetch(error=error)))

        assert result.error is error
        assert result.items == []
        assert result.degraded is False
        assert coordinator.state(KEY).last_error is error

    def test_non_network_error_skips_fallback(self, coordinator: FetchCoordinator, cache: CacheStore):
        cache.put(KEY, make_items(2))
        result = asyncio.run(coordinator.load(KEY, 1, CountingFetch(error=RemoteRejectedError("gallery", "role"))))
        assert isinstance(result.error, RemoteRejectedError)
        assert result.items == []
        assert result.degraded is False

    def test_hung_fetch_times_out_and_releases_key(self, monitor, cache: CacheStore):
        coordinator = FetchCoordinator(monitor, cache, fetch_timeout=0.05)

        async def hung(page):
            await asyncio.sleep(5)

        result = asyncio.run(coordinator.load(KEY, 1, hung))
        assert isinstance(result.error, FetchTimeoutError)
        assert result.degraded is True
        assert not coordinator.is_busy(KEY)

    def test_cache_write_failure_does_not_fail_fetch(self, monitor, db_engine):
        coordinator = FetchCoordinator(monitor, BrokenCache(db_engine), fetch_timeout=2)
        result = asyncio.run(coordinator.load(KEY, 1, CountingFetch(page_of(make_items(2)))))
        assert result.error is None
        assert len(result.items) == 2


class TestOffline:

    def test_offline_serves_cache_without_fetching(self, coordinator: FetchCoordinator, cache: CacheStore, switch):
        """P6: offline with a snapshot returns it degraded and never calls the remote."""
        cache.put(KEY, [{"id": "i1"}])
        switch.online = False
        fetch = CountingFetch(page_of(make_items(3)))

        result = asyncio.run(coordinator.load(KEY, 1, fetch))

        assert fetch.calls == []
        assert result.items == [{"id": "i1"}]
        assert result.degraded is True
        assert result.has_more is False
        assert result.error is None

    def test_offline_without_cache(self, coordinator: FetchCoordinator, switch):
        switch.online = False
        result = asyncio.run(coordinator.load(KEY, 1, CountingFetch(page_of([]))))
        assert result.items == []
        assert result.degraded is True
        assert isinstance(result.error, OfflineNoCacheError)

    def test_cache_read_failure_counts_as_empty(self, monitor, db_engine, switch):
        coordinator = FetchCoordinator(monitor, BrokenCache(db_engine), fetch_timeout=2)
        switch.online = False
        result = asyncio.run(coordinator.load(KEY, 1, CountingFetch(page_of([]))))
        assert isinstance(result.error, OfflineNoCacheError)
        assert not coordinator.is_busy(KEY)


class TestStateSlots:

    def test_discard_drops_state(self, coordinator: FetchCoordinator):
        asyncio.run(coordinator.load(KEY, 1, CountingFetch(page_of(make_items(1), total_pages=3))))
        assert coordinator.state(KEY).has_more is True
        coordinator.discard(KEY)
        assert coordinator.state(KEY).current_page == 0

    def test_discard_while_in_flight_keeps_key_busy(self, coordinator: FetchCoordinator):
        calls = []

        async def scenario():
            gate = asyncio.Event()

            async def slow_fetch(page):
                calls.append(page)
                await gate.wait()
                return page_of(make_items(1), total_pages=3)

            first = asyncio.create_task(coordinator.load(KEY, 1, slow_fetch))
            await asyncio.sleep(0)
            coordinator.discard(KEY)
            busy_after_discard = coordinator.is_busy(KEY)
            second = await coordinator.load(KEY, 1, slow_fetch)
            gate.set()
            await first
            return busy_after_discard, second

        busy_after_discard, second = asyncio.run(scenario())
        assert busy_after_discard is True
        assert second.busy is True
        assert calls == [1]
        # the slot is dropped once the running load settles
        assert not coordinator.is_busy(KEY)
        assert coordinator.state(KEY).current_page == 0
