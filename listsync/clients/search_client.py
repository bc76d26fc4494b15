from typing import Any, Dict, Mapping

from listsync.clients.list_client import ResourceListClient


class SearchClient(ResourceListClient):
    resource = "search"
    endpoint = "/api/search"
    items_field = "pages"

    def _filter_params(self, filters: Mapping[str, str]) -> Dict[str, Any]:
        params = dict(filters)
        # the api expects `q`; accept both spellings from callers
        if "query" in params:
            params["q"] = params.pop("query")
        return params
