from listsync.clients.list_client import ResourceListClient


class AudioClient(ResourceListClient):
    """Audio tracks, optionally narrowed by `categoryId`."""

    resource = "audio"
    endpoint = "/api/audio"
    items_field = "audios"
