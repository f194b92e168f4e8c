"""Test the optional Redis cache and the unread counter that relies on it."""

from __future__ import annotations

import pytest
import redis
from sqlalchemy.orm import Session

from app import cache, models
from app.db import SessionLocal
from app.services.notifications import UNREAD_COUNT_KEY, NotificationService


class InMemoryRedis:
    """The slice of the redis client API used by app.cache."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value

    def delete(self, *keys):
        return sum(1 for key in keys if self.store.pop(key, None) is not None)


class BrokenRedis:
    def get(self, *args):
        raise redis.ConnectionError("connection refused")

    setex = delete = get


@pytest.fixture()
def fake_redis(monkeypatch) -> InMemoryRedis:
    client = InMemoryRedis()
    monkeypatch.setattr(cache, "_redis_client", client)
    return client


def test_helpers_are_noops_without_redis():
    assert cache.get_redis_client() is None
    assert cache.cache_get_int("missing") is None
    assert cache.cache_set_int("missing", 1) is False
    assert cache.cache_delete("missing") == 0


def test_errors_fail_open(monkeypatch):
    monkeypatch.setattr(cache, "_redis_client", BrokenRedis())

    assert cache.cache_get_int("key") is None
    assert cache.cache_set_int("key", 3) is False
    assert cache.cache_delete("key") == 0


def test_unread_count_is_cached_and_invalidated(fake_redis, db: Session, user, other_user):
    key = UNREAD_COUNT_KEY.format(user_id=user.id)

    assert NotificationService.get_unread_count(db, user.id) == 0
    assert fake_redis.store[key] == "0"

    NotificationService.create(db, user.id, other_user, models.NOTIFICATION_FOLLOW, other_user.id)
    db.commit()
    assert key not in fake_redis.store

    assert NotificationService.get_unread_count(db, user.id) == 1

    NotificationService.mark_all_as_read(db, user.id)
    assert fake_redis.store[key] == "0"
    assert NotificationService.get_unread_count(db, user.id) == 0


def test_counter_read_before_commit_does_not_stick(fake_redis, db: Session, user, other_user):
    key = UNREAD_COUNT_KEY.format(user_id=user.id)

    NotificationService.create(db, user.id, other_user, models.NOTIFICATION_FOLLOW, other_user.id)

    # Another request reads while the notification is still uncommitted
    reader = SessionLocal()
    try:
        assert NotificationService.get_unread_count(reader, user.id) == 0
    finally:
        reader.close()
    assert fake_redis.store[key] == "0"

    db.commit()

    assert key not in fake_redis.store
    assert NotificationService.get_unread_count(db, user.id) == 1


def test_rolled_back_write_leaves_counter_alone(fake_redis, db: Session, user, other_user):
    key = UNREAD_COUNT_KEY.format(user_id=user.id)
    assert NotificationService.get_unread_count(db, user.id) == 0

    NotificationService.create(db, user.id, other_user, models.NOTIFICATION_FOLLOW, other_user.id)
    db.rollback()

    assert fake_redis.store[key] == "0"
    assert db.info.get("notifications.unread_stale") is None
