from typing import Any, Callable, Dict, Mapping, Optional, Type

from sqlalchemy.engine import Engine

from listsync.clients.audio_client import AudioClient
from listsync.clients.base_http_client import TokenProvider
from listsync.clients.gallery_client import GalleryClient
from listsync.clients.list_client import ResourceListClient
from listsync.clients.search_client import SearchClient
from listsync.config.settings import settings
from listsync.core.exceptions.exceptions import UnknownResourceError
from listsync.services.cache_store import CacheStore
from listsync.services.database import create_cache_engine
from listsync.services.fetch_coordinator import FetchCoordinator
from listsync.services.list_controller import ListController
from listsync.services.network_monitor import NetworkMonitor
from listsync.utils.log import app_logger

DEFAULT_CLIENTS: Dict[str, Type[ResourceListClient]] = {
    GalleryClient.resource: GalleryClient,
    AudioClient.resource: AudioClient,
    SearchClient.resource: SearchClient,
}


class ListSyncEngine:
    """Explicitly owned wiring of cache, network monitor, coordinator and clients.

    Built once at application startup and closed at teardown; nothing here is a
    module-level singleton.
    """

    def __init__(self,
                 db_engine: Optional[Engine] = None,
                 monitor: Optional[NetworkMonitor] = None,
                 clients: Optional[Mapping[str, Any]] = None,
                 token_provider: Optional[TokenProvider] = None,
                 cache_limit: Optional[int] = None,
                 resource_limits: Optional[Mapping[str, int]] = None,
                 fetch_timeout: Optional[float] = None):
        self.db_engine = db_engine or create_cache_engine()
        self.cache = CacheStore(self.db_engine, limit=cache_limit, resource_limits=resource_limits)
        self.monitor = monitor or NetworkMonitor()
        self.coordinator = FetchCoordinator(self.monitor, self.cache, fetch_timeout=fetch_timeout)
        if token_provider is None and settings.API_TOKEN:
            def token_provider() -> Optional[str]:
                return settings.API_TOKEN
        self.clients: Dict[str, Any] = dict(clients) if clients is not None else {
            name: cls(token_provider=token_provider) for name, cls in DEFAULT_CLIENTS.items()
        }

    @property
    def resources(self):
        return sorted(self.clients)

    def client(self, resource: str) -> Any:
        try:
            return self.clients[resource]
        except KeyError:
            raise UnknownResourceError(resource)

    def controller(self, resource: str, filters: Optional[Mapping[str, Any]] = None, **kwargs) -> ListController:
        return ListController(self.coordinator, self.client(resource), resource=resource, filters=filters, **kwargs)

    def reset(self) -> None:
        """App-level data reset (logout): drop every cached snapshot."""
        self.cache.clear()
        app_logger.info("engine.reset")

    def close(self) -> None:
        self.monitor.close()
        for client in self.clients.values():
            close: Optional[Callable[[], None]] = getattr(client, "close", None)
            if close:
                close()
        self.db_engine.dispose()
        app_logger.info("engine.closed")
