"""
Fetch coordinator: one paginated remote fetch per ResourceKey at a time, with
cache fallback.

Page 1 successes replace the persisted snapshot for the key; later pages are
returned as appends for the caller to merge. On page 1, a network-shaped
failure (any ``NetworkFetchError``, timeouts included) falls back to the
snapshot in degraded mode. Failures on later pages are returned as errors and
never touch the cache.

``load`` never raises: every outcome, including cache I/O trouble, comes back
as a ``ListResult``.
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Union

from listsync.config.settings import settings
from listsync.core.exceptions.exceptions import (
    CacheIOError,
    FetchTimeoutError,
    NetworkFetchError,
    OfflineNoCacheError,
)
from listsync.schemas.page import Item, ListResult, Page
from listsync.schemas.resource_key import ResourceKey
from listsync.services.cache_store import CacheStore
from listsync.services.network_monitor import NetworkMonitor
from listsync.utils.log import app_logger

RemoteFetch = Callable[[int], Union[Page, Awaitable[Page]]]


@dataclass
class FetchState:
    in_flight: bool = False
    current_page: int = 0
    has_more: bool = True
    last_error: Optional[Exception] = None
    # dropped once the running load finishes
    discard_pending: bool = False


class FetchCoordinator:

    def __init__(self, monitor: NetworkMonitor, cache: CacheStore, fetch_timeout: Optional[float] = None):
        self.monitor = monitor
        self.cache = cache
        self.fetch_timeout = fetch_timeout if fetch_timeout is not None else settings.FETCH_TIMEOUT
        self._states: Dict[ResourceKey, FetchState] = {}

    def state(self, key: ResourceKey) -> FetchState:
        st = self._states.get(key)
        if st is None:
            st = self._states[key] = FetchState()
        return st

    def is_busy(self, key: ResourceKey) -> bool:
        st = self._states.get(key)
        return bool(st and st.in_flight)

    def discard(self, key: ResourceKey) -> None:
        """Drop the state slot of a key whose screen went away or whose filter changed.

        A slot with a fetch still running stays in place, and keeps the key
        busy, until that fetch settles.
        """
        st = self._states.get(key)
        if st is None:
            return
        if st.in_flight:
            st.discard_pending = True
            return
        del self._states[key]

    def watch_connectivity(self, fn: Callable[[bool], None]) -> Callable[[], None]:
        return self.monitor.subscribe(fn)

    async def load(self, key: ResourceKey, page: int, remote_fetch: RemoteFetch) -> ListResult:
        st = self.state(key)
        if st.in_flight:
            app_logger.debug("fetch.busy", key=str(key), page=page)
            return ListResult.busy_result(page)

        # claimed before the first await so a concurrent call sees the guard
        st.in_flight = True
        try:
            online = await asyncio.to_thread(self.monitor.current)
            if not online:
                app_logger.info("fetch.offline", key=str(key), page=page)
                return await self._from_cache(key, page, OfflineNoCacheError(str(key)))

            try:
                result = await self._fetch(key, page, remote_fetch)
            except NetworkFetchError as e:
                st.last_error = e
                app_logger.warning("fetch.network_error", key=str(key), page=page, error=str(e))
                if page == 1:
                    return await self._from_cache(key, page, e)
                return ListResult(page=page, has_more=st.has_more, error=e)
            except Exception as e:
                st.last_error = e
                app_logger.error("fetch.failed", key=str(key), page=page, exc_type=type(e).__name__, error=str(e))
                return ListResult(page=page, has_more=st.has_more, error=e)

            st.current_page = page
            st.has_more = result.has_more
            st.last_error = None
            return result
        finally:
            st.in_flight = False
            if st.discard_pending and self._states.get(key) is st:
                del self._states[key]

    async def _fetch(self, key: ResourceKey, page: int, remote_fetch: RemoteFetch) -> ListResult:
        try:
            if inspect.iscoroutinefunction(remote_fetch):
                call = remote_fetch(page)
            else:
                call = asyncio.to_thread(remote_fetch, page)
            fetched: Page = await asyncio.wait_for(call, timeout=self.fetch_timeout)
        except asyncio.TimeoutError as e:
            raise FetchTimeoutError(key.resource, self.fetch_timeout) from e

        has_more = page < fetched.total_pages
        app_logger.info("fetch.success", key=str(key), page=page, count=len(fetched.items), has_more=has_more)

        if page == 1:
            await self._store(key, fetched.items)

        return ListResult(
            items=fetched.items,
            page=page,
            appended=page > 1,
            degraded=False,
            has_more=has_more,
        )

    async def _store(self, key: ResourceKey, items: List[Item]) -> None:
        try:
            await asyncio.to_thread(self.cache.put, key, items)
        except CacheIOError as e:
            # the fetch itself succeeded; a stale snapshot is acceptable
            app_logger.warning("fetch.cache_write_skipped", key=str(key), error=str(e))

    async def _read_cache(self, key: ResourceKey) -> List[Item]:
        try:
            return await asyncio.to_thread(self.cache.get, key)
        except CacheIOError as e:
            app_logger.warning("fetch.cache_read_failed", key=str(key), error=str(e))
            return []

    async def _from_cache(self, key: ResourceKey, page: int, miss_error: Exception) -> ListResult:
        cached = await self._read_cache(key)
        if cached:
            app_logger.info("fetch.degraded", key=str(key), page=page, count=len(cached))
            return ListResult(items=cached, page=page, degraded=True, has_more=False)
        return ListResult(items=[], page=page, degraded=True, has_more=False, error=miss_error)
