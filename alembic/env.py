"""Alembic environment configuration for StudySlot.

Targets the ORM metadata in ``studyslot.db.orm`` and runs SQLite migrations
with render_as_batch=True so ALTER TABLE works through table rebuilds.
"""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context

from studyslot.db.orm import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata

DEFAULT_URL = "sqlite:///data/studyslot.db"


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url", DEFAULT_URL),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Migrate a live database through the same engine factory the app uses."""
    from studyslot.db.engine import create_db_engine

    url = config.get_main_option("sqlalchemy.url", DEFAULT_URL)
    # sqlite:///relative/path or sqlite:////absolute/path
    connectable = create_db_engine(url.removeprefix("sqlite:///"))

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=True,
        )

        with context.begin_transaction():
            context.run_migrations()

    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
