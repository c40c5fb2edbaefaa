"""FastAPI test client fixtures."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from studyslot.api.app import wire_state
from studyslot.api.middleware import CorrelationIdMiddleware, add_exception_handlers
from studyslot.api.routes import experiments, registrations, reviews, sessions, system

if TYPE_CHECKING:
    from collections.abc import Callable

    from studyslot.config import Settings
    from studyslot.db import Database
    from studyslot.models.user import User
    from studyslot.service import SchedulingService


def _create_test_app(db: Database, settings: Settings, service: SchedulingService) -> FastAPI:
    """Create a FastAPI app with injected test db/settings (no lifespan)."""
    app = FastAPI(title="StudySlot Test")

    wire_state(app, db, settings)
    # Pin the clock so session visibility does not drift with the wall clock.
    app.state.service = service

    app.add_middleware(CorrelationIdMiddleware)
    add_exception_handlers(app)

    prefix = "/api"
    app.include_router(system.router, prefix=prefix)
    app.include_router(reviews.router, prefix=prefix)
    app.include_router(experiments.router, prefix=prefix)
    app.include_router(sessions.router, prefix=prefix)
    app.include_router(registrations.router, prefix=prefix)

    return app


@pytest.fixture()
def client(db: Database, settings: Settings, service: SchedulingService) -> TestClient:
    app = _create_test_app(db, settings, service)
    return TestClient(app)


@pytest.fixture()
def as_user() -> Callable[[User], dict[str, str]]:
    """Headers the upstream authenticator forwards for *user*."""

    def _headers(user: User) -> dict[str, str]:
        return {"X-User-Id": user.id}

    return _headers

