"""Shared test fixtures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from studyslot.config import Settings
from studyslot.db import Database
from studyslot.models.experiment import Experiment, ExperimentStatus, Session
from studyslot.models.user import User, UserRole
from studyslot.service import SchedulingService

# Fixed "now" for every time-sensitive assertion; sessions are scheduled after it.
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=tmp_path / "data",
        redis_url="",
        log_level="DEBUG",
        log_format="console",
        store_max_retries=5,
        store_retry_base_delay=0.0,
        worker_id="test-worker",
        _env_file=None,
    )


@pytest.fixture()
def db(tmp_path) -> Database:
    db = Database(tmp_path / "test.db", retry_base_delay=0.0, worker_id="test-worker")
    db.init_schema()
    yield db
    db.close()


@pytest.fixture()
def service(db: Database) -> SchedulingService:
    return SchedulingService(db, clock=lambda: NOW)


@pytest.fixture()
def researcher(db: Database) -> User:
    return db.create_user(
        User(email="ada@lab.edu", first_name="Ada", last_name="Ng", role=UserRole.RESEARCHER)
    )


@pytest.fixture()
def other_researcher(db: Database) -> User:
    return db.create_user(User(email="grace@lab.edu", role=UserRole.RESEARCHER))


@pytest.fixture()
def subject(db: Database) -> User:
    return db.create_user(User(email="sam@uni.edu", role=UserRole.SUBJECT))


@pytest.fixture()
def other_subject(db: Database) -> User:
    return db.create_user(User(email="kim@uni.edu", role=UserRole.SUBJECT))


@pytest.fixture()
def admin(db: Database) -> User:
    return db.create_user(User(email="root@uni.edu", role=UserRole.ADMIN))


@pytest.fixture()
def make_session():
    """Build a session starting *days* after NOW, one hour long."""

    def _make(days: int = 7, max_participants: int = 2, **kwargs) -> Session:
        start = NOW + timedelta(days=days)
        return Session(
            start_time=start,
            end_time=start + timedelta(hours=1),
            max_participants=max_participants,
            **kwargs,
        )

    return _make


@pytest.fixture()
def make_experiment(make_session):
    """Build an in-memory experiment; ``sessions`` defaults to one two-seat session."""

    def _make(
        status: ExperimentStatus = ExperimentStatus.OPEN,
        researcher: str = "r1",
        sessions: list[Session] | None = None,
        **kwargs,
    ) -> Experiment:
        return Experiment(
            title=kwargs.pop("title", "Reaction times"),
            researcher=researcher,
            status=status,
            sessions=[make_session()] if sessions is None else sessions,
            **kwargs,
        )

    return _make


@pytest.fixture()
def open_experiment(db: Database, researcher: User, make_experiment) -> Experiment:
    """An open experiment owned by ``researcher`` with one two-seat session, stored."""
    return db.create_experiment(make_experiment(researcher=researcher.id))
