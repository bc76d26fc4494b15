from typing import Optional


class AppError(Exception):
    """Base class for all application-level errors."""
    pass


class DomainError(AppError):
    """Base for domain logic errors."""
    pass

class InvalidFilterError(DomainError):
    def __init__(self, name: str, detail: str = ""):
        self.name = name
        self.message = f"Invalid filter '{name}': {detail}" if detail else f"Invalid filter '{name}'"
        super().__init__(self.message)

class UnknownResourceError(DomainError):
    def __init__(self, resource: str):
        self.resource = resource
        self.message = f"Unknown resource '{resource}'"
        super().__init__(self.message)


class SyncError(AppError):
    """Base for errors produced while synchronizing a list."""
    pass

class OfflineNoCacheError(SyncError):
    """No connectivity and no cached snapshot for the key. Shown as an empty state."""
    def __init__(self, key: str):
        self.key = key
        self.message = f"Offline and no cached items for '{key}'"
        super().__init__(self.message)

class RemoteRejectedError(SyncError):
    """The server answered but flagged the request as unsuccessful."""
    def __init__(self, resource: str, detail: str = ""):
        self.resource = resource
        self.message = detail or f"Request for '{resource}' was rejected"
        super().__init__(self.message)


class InfrastructureError(AppError):
    """Base for infrastructure-related errors (DB, API, etc)."""
    pass

class NetworkFetchError(InfrastructureError, SyncError):
    """Connectivity present but the remote call failed."""
    def __init__(self, resource: str, detail: str = ""):
        self.resource = resource
        self.message = f"Error fetching '{resource}': {detail}" if detail else f"Error fetching '{resource}'"
        super().__init__(self.message)

class FetchTimeoutError(NetworkFetchError):
    def __init__(self, resource: str, timeout: float):
        self.timeout = timeout
        super().__init__(resource, f"timed out after {timeout}s")

class RemoteStatusError(NetworkFetchError):
    def __init__(self, resource: str, status_code: int, detail: str = ""):
        self.status_code = status_code
        super().__init__(resource, detail or f"status {status_code}")

class MalformedResponseError(NetworkFetchError):
    def __init__(self, resource: str, detail: str = "malformed body"):
        super().__init__(resource, detail)

class CacheIOError(InfrastructureError, SyncError):
    """Local persisted store read/write failure."""
    def __init__(self, operation: str, detail: Optional[str] = None):
        self.operation = operation
        self.message = f"Cache {operation} failed: {detail}" if detail else f"Cache {operation} failed"
        super().__init__(self.message)
