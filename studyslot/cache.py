"""User lookup cache with a TTL.

Redis-backed when ``redis_url`` is configured, otherwise a bounded map local to
the process. Either way entries may be stale for up to ``user_cache_ttl_seconds``
after the user record changes, unless the writer deletes the key.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import TYPE_CHECKING, cast

import redis
import structlog
from pydantic import ValidationError

from studyslot.models.user import User

if TYPE_CHECKING:
    from collections.abc import Callable

    from studyslot.config import Settings
    from studyslot.protocols import UserCachePort

logger = structlog.get_logger()


class RedisUserCache:
    """Keys: studyslot:user:{user_id}; values: JSON-serialized User; native Redis TTL."""

    _PREFIX = "studyslot:user"

    def __init__(self, redis_url: str, ttl_seconds: int) -> None:
        self._client: redis.Redis = redis.Redis.from_url(redis_url, decode_responses=True)
        self._ttl_seconds = ttl_seconds

    def _make_key(self, user_id: str) -> str:
        return f"{self._PREFIX}:{user_id}"

    def get(self, user_id: str) -> User | None:
        try:
            # redis-py .get() returns bytes|str|None depending on decode_responses
            raw = cast("str | None", self._client.get(self._make_key(user_id)))
        except redis.RedisError as exc:
            logger.warning("user_cache_unavailable", op="get", error=str(exc))
            return None
        if raw is None:
            return None
        try:
            return User.model_validate_json(raw)
        except ValidationError:
            logger.warning("user_cache_corrupt_entry", user_id=user_id)
            self.delete(user_id)
            return None

    def set(self, user: User) -> None:
        try:
            self._client.set(self._make_key(user.id), user.model_dump_json(), ex=self._ttl_seconds)
        except redis.RedisError as exc:
            logger.warning("user_cache_unavailable", op="set", error=str(exc))

    def delete(self, user_id: str) -> None:
        try:
            self._client.delete(self._make_key(user_id))
        except redis.RedisError as exc:
            logger.warning("user_cache_unavailable", op="delete", error=str(exc))

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False


class LocalUserCache:
    """Bounded in-process cache; the oldest entry is evicted at capacity."""

    def __init__(
        self,
        ttl_seconds: int,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, User]] = OrderedDict()
        # Shared by the request threadpool.
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, user_id: str) -> User | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return None
            expires_at, user = entry
            if now >= expires_at:
                self._entries.pop(user_id, None)
                return None
            return user

    def set(self, user: User) -> None:
        expires_at = self._clock() + self._ttl_seconds
        with self._lock:
            self._entries.pop(user.id, None)
            while self._entries and len(self._entries) >= self._max_entries:
                self._entries.popitem(last=False)
            self._entries[user.id] = (expires_at, user)

    def delete(self, user_id: str) -> None:
        with self._lock:
            self._entries.pop(user_id, None)

    def ping(self) -> bool:
        return True


def create_user_cache(settings: Settings) -> UserCachePort:
    if settings.redis_url:
        return RedisUserCache(settings.redis_url, settings.user_cache_ttl_seconds)
    return LocalUserCache(settings.user_cache_ttl_seconds, settings.user_cache_max_entries)
