from typing import Any, Dict, Mapping

from listsync.clients.list_client import ResourceListClient

# the UI says "approved", the api says "permitted"
STATUS_TO_API = {
    "approved": "permitted",
    "review": "review",
}


class GalleryClient(ResourceListClient):
    resource = "gallery"
    endpoint = "/api/gallery"
    items_field = "images"

    def _filter_params(self, filters: Mapping[str, str]) -> Dict[str, Any]:
        params = dict(filters)
        status = params.get("status", "approved")
        params["status"] = STATUS_TO_API.get(status, status)
        return params
