import json
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional

from sqlalchemy import delete
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from listsync.config.settings import settings
from listsync.core.exceptions.exceptions import CacheIOError
from listsync.models.cache_entry import CacheEntry
from listsync.schemas.page import Item
from listsync.schemas.resource_key import ResourceKey
from listsync.services.database import init_db, session_factory
from listsync.utils.log import app_logger


class CacheStore:
    """Bounded, persisted snapshot cache keyed by ResourceKey.

    Each key holds the first `limit` items of its most recent successful page-1
    fetch. `put` replaces the whole snapshot, it never merges with the previous
    one. Storage errors surface as `CacheIOError`; callers decide how to
    recover.
    """

    def __init__(self, engine: Engine, limit: Optional[int] = None,
                 resource_limits: Optional[Mapping[str, int]] = None,
                 create_tables: bool = True):
        self.engine = engine
        self.limit = limit if limit is not None else settings.CACHE_LIMIT
        self.resource_limits: Dict[str, int] = dict(resource_limits or {})
        self._sessions = session_factory(engine)
        if create_tables:
            init_db(engine)

    def limit_for(self, key: ResourceKey) -> int:
        return self.resource_limits.get(key.resource, self.limit)

    def get(self, key: ResourceKey) -> List[Item]:
        entry = self.entry(key)
        if entry is None:
            return []
        try:
            return json.loads(entry.items)
        except ValueError as e:
            raise CacheIOError("read", f"corrupt snapshot for {key}: {e}")

    def entry(self, key: ResourceKey) -> Optional[CacheEntry]:
        try:
            with self._sessions() as db:
                return db.get(CacheEntry, key.serialize())
        except SQLAlchemyError as e:
            app_logger.error("cache.read_failed", key=str(key), error=str(e))
            raise CacheIOError("read", str(e))

    def put(self, key: ResourceKey, items: List[Item]) -> None:
        snapshot = list(items)[: self.limit_for(key)]
        data = {
            "key": key.serialize(),
            "resource": key.resource,
            "items": json.dumps(snapshot, default=str),
            "stored_at": datetime.now(timezone.utc),
        }
        with self._sessions() as db:
            try:
                # merge on the primary key: the new row fully supersedes the old one
                db.merge(CacheEntry(**data))
                db.commit()
                app_logger.debug("cache.put", key=data["key"], count=len(snapshot))
            except SQLAlchemyError as e:
                db.rollback()
                app_logger.error("cache.write_failed", key=data["key"], error=str(e))
                raise CacheIOError("write", str(e))

    def clear(self) -> None:
        with self._sessions() as db:
            try:
                result = db.execute(delete(CacheEntry))
                db.commit()
                app_logger.info("cache.cleared", removed=result.rowcount)
            except SQLAlchemyError as e:
                db.rollback()
                app_logger.error("cache.clear_failed", error=str(e))
                raise CacheIOError("clear", str(e))
