from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class FilterRequest(BaseModel):
    filters: Dict[str, Optional[Any]] = Field(default_factory=dict)


class ListStateOut(BaseModel):
    key: str
    status: str
    items: List[Dict[str, Any]]
    page: int
    has_more: bool
    loading: bool
    refreshing: bool
    loading_more: bool
    degraded: bool
    error: Optional[str] = None
    error_type: Optional[str] = None
    notice: Optional[str] = None
    online: Optional[bool] = None


class ConnectivityOut(BaseModel):
    online: bool
