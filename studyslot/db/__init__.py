"""Database package: engine, ORM models, and the experiment store facade."""

from studyslot.db.engine import create_db_engine, create_session_factory
from studyslot.db.facade import Database, EventDict
from studyslot.db.orm import Base, ExperimentEventRow, ExperimentRow, UserRow

__all__ = [
    "Base",
    "Database",
    "EventDict",
    "ExperimentEventRow",
    "ExperimentRow",
    "UserRow",
    "create_db_engine",
    "create_session_factory",
]
