from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import Session, SQLModel

from listsync.config.settings import settings
# register table models in SQLModel.metadata
from listsync.models import cache_entry  # noqa: F401


def create_cache_engine(url: str = None, echo: bool = False) -> Engine:
    """
    create the engine backing the persisted list cache.
    sqlite is the default; connections may be used from worker threads.
    """
    url = url or settings.CACHE_DB_URL
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True, echo=echo)

    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode = WAL")
            cursor.execute("PRAGMA synchronous = NORMAL")
            cursor.execute("PRAGMA busy_timeout = 5000")
            cursor.close()

    return engine


def init_db(engine: Engine) -> None:
    """create missing tables (alembic handles real migrations)."""
    SQLModel.metadata.create_all(engine)


def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=False)
