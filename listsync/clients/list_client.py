from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from listsync.clients.base_http_client import BaseHTTPClient, TokenProvider
from listsync.config.settings import settings
from listsync.core.exceptions.exceptions import MalformedResponseError, RemoteRejectedError
from listsync.schemas.page import ListEnvelope, Page
from listsync.utils.log import app_logger


class ResourceListClient(BaseHTTPClient):
    """Client for a paginated list endpoint: `GET /{resource}?page=&limit=&filters`.

    Subclasses set `resource`, `endpoint` and `items_field`, and may override
    `_filter_params` to translate UI filters into query parameters.
    """

    resource: str = ""
    endpoint: str = ""
    items_field: str = "items"

    def __init__(self, base_url: Optional[str] = None, token_provider: Optional[TokenProvider] = None, **kwargs):
        kwargs.setdefault("timeout", settings.REQUEST_TIMEOUT)
        kwargs.setdefault("max_retries", settings.MAX_RETRIES)
        kwargs.setdefault("retry_delay", settings.RETRY_DELAY)
        super().__init__(base_url=base_url or settings.API_BASE_URL, token_provider=token_provider, **kwargs)

    def _filter_params(self, filters: Mapping[str, str]) -> Dict[str, Any]:
        return dict(filters)

    def fetch_page(self, page: int, limit: Optional[int] = None,
                   filters: Optional[Mapping[str, str]] = None) -> Page:
        limit = limit or settings.PAGE_SIZE
        params = {"page": page, "limit": limit, **self._filter_params(filters or {})}
        body = self.get(self.endpoint, params=params)

        if not body:
            # empty 2xx body: nothing to show, not an error
            app_logger.debug("list.empty_body", resource=self.resource, page=page)
            return Page(items=[], page_number=page, page_size=limit, total_pages=0)

        try:
            envelope = ListEnvelope.model_validate(body)
            result = envelope.to_page(self.items_field, page, limit)
        except ValidationError as e:
            raise MalformedResponseError(self.resource, f"unexpected body shape: {e.error_count()} errors")

        if not envelope.success:
            raise RemoteRejectedError(self.resource, envelope.message)

        app_logger.debug("list.fetched", resource=self.resource, page=page,
                         count=len(result.items), total_pages=result.total_pages)
        return result
