"""SQLAlchemy engine factory and session maker for the experiment store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from sqlalchemy import Engine

_MEMORY = ":memory:"


def create_db_engine(db_path: str | object, echo: bool = False) -> Engine:
    """Create a SQLite engine.

    File databases run in WAL mode with a busy timeout, so concurrent writers
    queue at the database and conditional updates serialize there. An in-memory
    database is pinned to a single shared connection so every session sees the
    same data.
    """
    path_str = str(db_path)
    kwargs: dict[str, Any] = {"echo": echo}
    if path_str == _MEMORY:
        url = "sqlite://"
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        url = f"sqlite:///{path_str}"
        kwargs["connect_args"] = {"timeout": 30.0, "check_same_thread": False}

    engine = create_engine(url, **kwargs)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _connection_record: object) -> None:
        cursor = dbapi_conn.cursor()
        if path_str != _MEMORY:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=30000")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)
