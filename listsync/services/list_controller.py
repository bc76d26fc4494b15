import asyncio
import inspect
from typing import Any, Callable, List, Mapping, Optional, Set, Tuple

from listsync.config.settings import settings
from listsync.schemas.list_state import ListState, ListStatus
from listsync.schemas.page import ListResult, merge_items
from listsync.schemas.resource_key import ResourceKey
from listsync.services.fetch_coordinator import FetchCoordinator, RemoteFetch
from listsync.utils.log import app_logger

StateListener = Callable[[ListState], None]

NOTICE_CACHED = "Showing cached items. Please check your connection."
NOTICE_NO_CACHE = "No cached items available. Please check your connection."


class ListController:
    """Per-screen list state machine on top of a FetchCoordinator.

    IDLE -> LOADING -> LOADED | DEGRADED | ERRORED
    LOADED -> LOADING_MORE -> LOADED | ERRORED (visible items kept)

    All mutations happen on the event loop that drives the controller.
    Results are applied only while the controller is open and still showing
    the key (and filter generation) the request was made for.
    """

    def __init__(self, coordinator: FetchCoordinator, client: Any, resource: Optional[str] = None,
                 filters: Optional[Mapping[str, Any]] = None, page_size: Optional[int] = None,
                 auto_refresh_on_reconnect: bool = False):
        self.coordinator = coordinator
        self.client = client
        self.page_size = page_size or settings.PAGE_SIZE
        self.auto_refresh_on_reconnect = auto_refresh_on_reconnect

        self._key = ResourceKey.of(resource or client.resource, filters)
        self._generation = 0
        self._closed = False
        self._notice_shown = False
        # (key, generation) of loads this controller started and that have not settled
        self._pending: Set[Tuple[ResourceKey, int]] = set()
        self._reload_pending = False
        self._listeners: List[StateListener] = []
        self._tasks: Set[asyncio.Task] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._state = ListState(key=self._key.serialize(), online=coordinator.monitor.last_known)
        self._unwatch = coordinator.watch_connectivity(self._on_connectivity)

    # observable state

    @property
    def key(self) -> ResourceKey:
        return self._key

    @property
    def state(self) -> ListState:
        return self._state

    @property
    def items(self):
        return self._state.items

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, fn: StateListener) -> Callable[[], None]:
        self._listeners.append(fn)

        def unsubscribe() -> None:
            if fn in self._listeners:
                self._listeners.remove(fn)

        return unsubscribe

    def _update(self, **changes) -> None:
        self._state = self._state.model_copy(update=changes)
        for fn in list(self._listeners):
            try:
                fn(self._state)
            except Exception as e:
                app_logger.error("list.listener_failed", key=self._state.key, error=str(e), exc_info=e)

    # operations

    async def refresh(self) -> None:
        """Reload page 1 of the current key and replace items on completion."""
        if self._closed:
            return
        self._bind_loop()
        key, generation = self._key, self._generation
        if self.coordinator.is_busy(key):
            superseded = any(k == key and g != generation for k, g in self._pending)
            if not superseded:
                app_logger.debug("list.refresh_ignored", key=str(key))
                return
            # the key is held by a fetch from an earlier filter generation; reload once it settles
            self._reload_pending = True
            self._update(status=ListStatus.LOADING, loading=not self._state.items, error=None)
            app_logger.debug("list.refresh_queued", key=str(key))
            return

        fresh = not self._state.items
        self._update(status=ListStatus.LOADING, loading=fresh, refreshing=not fresh, error=None)

        result = await self._load(key, generation, 1)
        if not self._accepts(key, generation):
            app_logger.info("list.stale_result_dropped", key=str(key), page=1)
            await self._resume_pending(key)
            return
        if result.busy:
            self._update(status=self._settled_status(), loading=False, refreshing=False)
            return

        if result.error is not None and not result.items:
            # keep whatever is visible; a fresh key has nothing to keep
            self._update(
                status=ListStatus.ERRORED,
                loading=False,
                refreshing=False,
                degraded=result.degraded,
                error=result.error,
                notice=self._notice_for(result.degraded, has_items=False),
            )
            return

        self._update(
            status=ListStatus.DEGRADED if result.degraded else ListStatus.LOADED,
            items=result.items,
            page=1,
            has_more=result.has_more,
            loading=False,
            refreshing=False,
            degraded=result.degraded,
            error=None,
            notice=self._notice_for(result.degraded, has_items=True),
        )

    async def load_more(self) -> None:
        """Request the next page and append it, de-duplicated by item id."""
        st = self._state
        if self._closed or st.loading or st.loading_more or not st.has_more:
            return
        # paging continues a loaded first page; an errored page 1 waits for refresh()
        if st.page < 1:
            return
        key, generation = self._key, self._generation
        if self.coordinator.is_busy(key):
            return
        self._bind_loop()

        next_page = st.page + 1
        self._update(status=ListStatus.LOADING_MORE, loading_more=True)

        result = await self._load(key, generation, next_page)
        if not self._accepts(key, generation):
            app_logger.info("list.stale_result_dropped", key=str(key), page=next_page)
            await self._resume_pending(key)
            return
        if result.busy:
            self._update(status=self._settled_status(), loading_more=False)
            return

        if result.degraded:
            # offline while scrolling: the snapshot must not replace pages already on screen
            self._update(
                status=ListStatus.DEGRADED,
                loading_more=False,
                has_more=False,
                degraded=True,
                notice=self._notice_for(True, has_items=True),
            )
            return

        if result.error is not None:
            self._update(
                status=ListStatus.ERRORED,
                loading_more=False,
                error=result.error,
            )
            return

        self._update(
            status=ListStatus.LOADED,
            items=merge_items(self._state.items, result.items),
            page=next_page,
            has_more=result.has_more,
            loading_more=False,
            degraded=False,
            error=None,
            notice=None,
        )

    async def set_filter(self, params: Optional[Mapping[str, Any]]) -> None:
        """Switch to the key built from `params`; an equal key is a no-op."""
        if self._closed:
            return
        new_key = self._key.with_filters(params)
        if new_key == self._key:
            return

        old_key = self._key
        self._key = new_key
        self._generation += 1
        self._notice_shown = False
        self._reload_pending = False
        self.coordinator.discard(old_key)
        app_logger.info("list.filter_changed", old=str(old_key), new=str(new_key))

        self._update(
            key=new_key.serialize(),
            status=ListStatus.IDLE,
            items=[],
            page=0,
            has_more=True,
            loading=False,
            refreshing=False,
            loading_more=False,
            degraded=False,
            error=None,
            notice=None,
        )
        await self.refresh()

    def close(self) -> None:
        """Tear down: later results are dropped and pending work is cancelled."""
        if self._closed:
            return
        self._closed = True
        self._unwatch()
        self.coordinator.discard(self._key)
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._listeners.clear()
        app_logger.debug("list.closed", key=str(self._key))

    # helpers

    async def _load(self, key: ResourceKey, generation: int, page: int) -> ListResult:
        token = (key, generation)
        self._pending.add(token)
        try:
            return await self.coordinator.load(key, page, self._remote_fetch(key))
        finally:
            self._pending.discard(token)

    async def _resume_pending(self, key: ResourceKey) -> None:
        # a refresh for the current key was queued behind this superseded load
        if self._reload_pending and not self._closed and key == self._key:
            self._reload_pending = False
            await self.refresh()

    def _accepts(self, key: ResourceKey, generation: int) -> bool:
        return not self._closed and key == self._key and generation == self._generation

    def _settled_status(self) -> ListStatus:
        st = self._state
        if st.error is not None:
            return ListStatus.ERRORED
        if st.degraded:
            return ListStatus.DEGRADED
        return ListStatus.LOADED if st.page > 0 else ListStatus.IDLE

    def _notice_for(self, degraded: bool, has_items: bool) -> Optional[str]:
        if not degraded:
            return None
        if self._notice_shown:
            return self._state.notice
        self._notice_shown = True
        return NOTICE_CACHED if has_items else NOTICE_NO_CACHE

    def _remote_fetch(self, key: ResourceKey) -> RemoteFetch:
        fetch_page = self.client.fetch_page
        limit = self.page_size
        params = key.params

        if inspect.iscoroutinefunction(fetch_page):
            async def remote(page: int):
                return await fetch_page(page, limit, params)
        else:
            def remote(page: int):
                return fetch_page(page, limit, params)
        return remote

    def _bind_loop(self) -> None:
        # the loop driving the latest operation owns the controller
        self._loop = asyncio.get_running_loop()

    def _on_connectivity(self, online: bool) -> None:
        # the monitor may publish from a worker thread
        loop = self._loop
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if loop is not None and running is not loop and not loop.is_closed():
            loop.call_soon_threadsafe(self._apply_connectivity, online)
        else:
            self._apply_connectivity(online)

    def _apply_connectivity(self, online: bool) -> None:
        if self._closed:
            return
        if not online:
            self._update(online=False)
            return

        self._notice_shown = False
        self._update(online=True, notice=None)
        stale = self._state.status in (ListStatus.DEGRADED, ListStatus.ERRORED)
        if self.auto_refresh_on_reconnect and stale and self._loop is not None and not self._loop.is_closed():
            task = self._loop.create_task(self.refresh())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
