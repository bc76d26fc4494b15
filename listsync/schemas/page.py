from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Opaque to the engine apart from its stable string `id`.
Item = Dict[str, Any]


def item_id(item: Item) -> Optional[str]:
    value = item.get("id")
    return None if value is None else str(value)


def merge_items(prior: Iterable[Item], new: Iterable[Item]) -> List[Item]:
    """Append `new` after `prior`, skipping items whose id is already present.

    Items without an id cannot be matched and are always appended.
    """
    merged = list(prior)
    seen = {item_id(i) for i in merged} - {None}
    for item in new:
        key = item_id(item)
        if key is not None:
            if key in seen:
                continue
            seen.add(key)
        merged.append(item)
    return merged


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int = 1
    limit: int = 10
    total: int = 0
    total_pages: int = Field(default=0, alias="totalPages")


class Page(BaseModel):
    items: List[Item] = Field(default_factory=list)
    page_number: int = 1
    page_size: int = 10
    total_pages: int = 0


class ListEnvelope(BaseModel):
    """Remote list body: `{success, message, data: {<items field>: [...], pagination}}`."""

    success: bool = True
    message: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_page(self, items_field: str, page: int, limit: int) -> Page:
        raw_items = self.data.get(items_field) or []
        pagination = Pagination.model_validate(self.data.get("pagination") or {"page": page, "limit": limit})
        return Page(
            items=list(raw_items),
            page_number=pagination.page or page,
            page_size=pagination.limit or limit,
            total_pages=pagination.total_pages,
        )


class ListResult(BaseModel):
    """Outcome of one FetchCoordinator.load call. Never carries a raised exception."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    items: List[Item] = Field(default_factory=list)
    page: int = 1
    appended: bool = False
    degraded: bool = False
    has_more: bool = False
    error: Optional[Exception] = None
    # duplicate request dropped by the in-flight guard
    busy: bool = False

    @classmethod
    def busy_result(cls, page: int) -> "ListResult":
        return cls(page=page, busy=True)
