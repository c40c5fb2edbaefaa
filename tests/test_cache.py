"""Tests for the user lookup caches and the read-through user directory.

Verifies:
- RedisUserCache get/set/delete/ping against fakeredis, TTL, degradation
- LocalUserCache TTL expiry and eviction of the oldest entry
- UserDirectory read-through and invalidation
"""

from __future__ import annotations

import threading
from typing import cast
from unittest.mock import MagicMock

import fakeredis
import pytest
import redis

from studyslot.cache import LocalUserCache, RedisUserCache, create_user_cache
from studyslot.config import Settings
from studyslot.models.user import User, UserRole
from studyslot.protocols import UserCachePort
from studyslot.users import UserDirectory

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def fake_redis_client() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def redis_cache(fake_redis_client: fakeredis.FakeRedis) -> RedisUserCache:
    rc = RedisUserCache("redis://localhost:6379/0", ttl_seconds=60)
    rc._client = fake_redis_client  # Inject fake Redis
    return rc


@pytest.fixture()
def user() -> User:
    return User(email="sam@uni.edu", role=UserRole.SUBJECT, first_name="Sam")


# ---------------------------------------------------------------------------
# RedisUserCache
# ---------------------------------------------------------------------------


class TestRedisUserCache:
    def test_set_and_get_round_trip(self, redis_cache: RedisUserCache, user: User) -> None:
        redis_cache.set(user)
        assert redis_cache.get(user.id) == user

    def test_get_returns_none_for_missing(self, redis_cache: RedisUserCache) -> None:
        assert redis_cache.get("nobody") is None

    def test_ttl_is_applied(
        self,
        fake_redis_client: fakeredis.FakeRedis,
        redis_cache: RedisUserCache,
        user: User,
    ) -> None:
        redis_cache.set(user)
        ttl = cast("int", fake_redis_client.ttl(f"studyslot:user:{user.id}"))
        assert 0 < ttl <= 60

    def test_delete(self, redis_cache: RedisUserCache, user: User) -> None:
        redis_cache.set(user)
        redis_cache.delete(user.id)
        assert redis_cache.get(user.id) is None

    def test_ping(self, redis_cache: RedisUserCache) -> None:
        assert redis_cache.ping() is True

    def test_unreachable_redis_degrades_to_miss(self, user: User) -> None:
        rc = RedisUserCache("redis://localhost:6379/0", ttl_seconds=60)
        broken = MagicMock()
        broken.get.side_effect = redis.ConnectionError("down")
        broken.set.side_effect = redis.ConnectionError("down")
        broken.ping.side_effect = redis.ConnectionError("down")
        rc._client = broken

        rc.set(user)
        assert rc.get(user.id) is None
        assert rc.ping() is False

    def test_ping_timeout_reports_unhealthy(self) -> None:
        rc = RedisUserCache("redis://localhost:6379/0", ttl_seconds=60)
        slow = MagicMock()
        slow.ping.side_effect = redis.TimeoutError("timed out")
        rc._client = slow
        assert rc.ping() is False

    def test_corrupt_entry_is_a_miss_and_is_dropped(
        self,
        fake_redis_client: fakeredis.FakeRedis,
        redis_cache: RedisUserCache,
        user: User,
    ) -> None:
        key = f"studyslot:user:{user.id}"
        fake_redis_client.set(key, "{not json")
        assert redis_cache.get(user.id) is None
        assert fake_redis_client.get(key) is None

    def test_satisfies_port(self, redis_cache: RedisUserCache) -> None:
        assert isinstance(redis_cache, UserCachePort)


# ---------------------------------------------------------------------------
# LocalUserCache
# ---------------------------------------------------------------------------


class TestLocalUserCache:
    def test_entry_expires_after_ttl(self, user: User) -> None:
        clock = FakeClock()
        cache = LocalUserCache(ttl_seconds=30, clock=clock)
        cache.set(user)

        clock.now += 29
        assert cache.get(user.id) == user
        clock.now += 1
        assert cache.get(user.id) is None
        assert len(cache) == 0

    def test_oldest_entry_is_evicted_at_capacity(self) -> None:
        cache = LocalUserCache(ttl_seconds=30, max_entries=2)
        users = [User(email=f"u{i}@x.org", role=UserRole.SUBJECT) for i in range(3)]
        for u in users:
            cache.set(u)

        assert len(cache) == 2
        assert cache.get(users[0].id) is None
        assert cache.get(users[2].id) == users[2]

    def test_reset_refreshes_position_and_ttl(self, user: User) -> None:
        clock = FakeClock()
        cache = LocalUserCache(ttl_seconds=10, max_entries=2, clock=clock)
        other = User(email="kim@uni.edu", role=UserRole.SUBJECT)
        cache.set(user)
        cache.set(other)
        clock.now += 5
        cache.set(user)
        cache.set(User(email="new@uni.edu", role=UserRole.SUBJECT))

        assert cache.get(other.id) is None
        clock.now += 9
        assert cache.get(user.id) == user

    def test_interleaved_expiry_of_the_same_entry(self, user: User) -> None:
        clock = FakeClock()
        cache = LocalUserCache(ttl_seconds=10, clock=clock)
        cache.set(user)
        clock.now += 10
        nested: list[User | None] = []

        def reentrant_clock() -> float:
            # A second reader expires the same entry before the first one does.
            if not nested:
                nested.append(cache.get(user.id))
            return clock.now

        cache._clock = reentrant_clock
        assert cache.get(user.id) is None
        assert nested == [None]
        assert len(cache) == 0

    def test_concurrent_readers_and_writers(self) -> None:
        clock = FakeClock()
        cache = LocalUserCache(ttl_seconds=1, max_entries=4, clock=clock)
        users = [User(email=f"t{i}@x.org", role=UserRole.SUBJECT) for i in range(8)]
        errors: list[BaseException] = []

        def worker(offset: int) -> None:
            try:
                for step in range(300):
                    u = users[(offset + step) % len(users)]
                    cache.set(u)
                    clock.now += 0.5
                    cache.get(u.id)
                    if step % 7 == 0:
                        cache.delete(u.id)
            except BaseException as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(cache) <= 4

    def test_satisfies_port(self) -> None:
        assert isinstance(LocalUserCache(ttl_seconds=1), UserCachePort)


class TestCreateUserCache:
    def test_local_when_redis_not_configured(self, settings: Settings) -> None:
        assert isinstance(create_user_cache(settings), LocalUserCache)

    def test_redis_when_configured(self, settings: Settings) -> None:
        configured = settings.model_copy(update={"redis_url": "redis://localhost:6379/0"})
        assert isinstance(create_user_cache(configured), RedisUserCache)


# ---------------------------------------------------------------------------
# UserDirectory
# ---------------------------------------------------------------------------


class TestUserDirectory:
    def test_reads_through_to_database(self, db, subject) -> None:
        cache = LocalUserCache(ttl_seconds=60)
        directory = UserDirectory(db, cache)
        assert directory.get(subject.id) == subject
        assert cache.get(subject.id) == subject

    def test_cache_hit_skips_database(self, subject) -> None:
        cache = LocalUserCache(ttl_seconds=60)
        cache.set(subject)
        db = MagicMock()
        directory = UserDirectory(db, cache)
        assert directory.get(subject.id) == subject
        db.get_user.assert_not_called()

    def test_unknown_user_is_not_cached(self, db) -> None:
        cache = LocalUserCache(ttl_seconds=60)
        directory = UserDirectory(db, cache)
        assert directory.get("ghost") is None
        assert len(cache) == 0

    def test_add_and_invalidate(self, db, redis_cache: RedisUserCache, user: User) -> None:
        directory = UserDirectory(db, redis_cache)
        directory.add(user)
        assert directory.get(user.id) == user
        directory.invalidate(user.id)
        assert redis_cache.get(user.id) is None
        assert directory.cache_ok() is True
