"""Read-through user directory used by the authorization boundary."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from studyslot.metrics import user_cache_lookups_total

if TYPE_CHECKING:
    from studyslot.db import Database
    from studyslot.models.user import User
    from studyslot.protocols import UserCachePort

logger = structlog.get_logger()


class UserDirectory:
    """Resolves user ids to users, consulting the cache before the database."""

    def __init__(self, db: Database, cache: UserCachePort) -> None:
        self._db = db
        self._cache = cache

    def get(self, user_id: str) -> User | None:
        cached = self._cache.get(user_id)
        if cached is not None:
            user_cache_lookups_total.labels(result="hit").inc()
            return cached
        user_cache_lookups_total.labels(result="miss").inc()
        user = self._db.get_user(user_id)
        if user is not None:
            self._cache.set(user)
        return user

    def add(self, user: User) -> User:
        created = self._db.create_user(user)
        self._cache.delete(created.id)
        logger.info("user_added", user_id=created.id, role=created.role)
        return created

    def invalidate(self, user_id: str) -> None:
        self._cache.delete(user_id)

    def cache_ok(self) -> bool:
        return self._cache.ping()
