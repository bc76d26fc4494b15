from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from listsync.schemas.page import Item


class ListStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    DEGRADED = "degraded"
    ERRORED = "errored"
    LOADING_MORE = "loading_more"


class ListState(BaseModel):
    """Immutable snapshot of a list screen, published after every transition."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: str
    status: ListStatus = ListStatus.IDLE
    items: List[Item] = Field(default_factory=list)
    page: int = 0
    has_more: bool = True
    # first page of a fresh key in flight
    loading: bool = False
    # page-1 reload over items that are already visible
    refreshing: bool = False
    loading_more: bool = False
    degraded: bool = False
    error: Optional[Exception] = None
    # user-facing notice, shown once per offline episode
    notice: Optional[str] = None
    online: Optional[bool] = None

    def public_dict(self) -> dict:
        data = self.model_dump(mode="json", exclude={"error"})
        data["error"] = str(self.error) if self.error else None
        data["error_type"] = type(self.error).__name__ if self.error else None
        return data
