from datetime import datetime, timezone

from sqlmodel import Field, Column, DateTime, SQLModel
from sqlalchemy import Text


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CacheEntry(SQLModel, table=True):
    __tablename__ = "cache_entries"

    # serialized ResourceKey, e.g. "gallery:status=permitted"
    key: str = Field(primary_key=True)
    resource: str = Field(index=True, nullable=False)
    # JSON array of items, already truncated to the cache limit
    items: str = Field(default="[]", sa_column=Column(Text, nullable=False))
    stored_at: datetime = Field(default_factory=_utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
