"""Tests for the Redis counter store."""

import fakeredis
import pytest

from api_cache.adapters.redis_counter_store import RedisCounterStore

KEY = "api-cache:rate-limit:demo"


@pytest.fixture
def redis_client() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def store(redis_client: fakeredis.FakeRedis) -> RedisCounterStore:
    return RedisCounterStore(redis_client)


def test_increment_accumulates_within_window(store: RedisCounterStore) -> None:
    assert store.increment(KEY, 1, 60) == 1
    assert store.increment(KEY, 2, 60) == 3

    assert store.attempts(KEY) == 3


def test_first_increment_opens_window(
    store: RedisCounterStore, redis_client: fakeredis.FakeRedis
) -> None:
    store.increment(KEY, 1, 60)

    assert redis_client.ttl(KEY) == 60
    assert store.available_in(KEY) == 60


def test_later_increment_does_not_extend_window(
    store: RedisCounterStore, redis_client: fakeredis.FakeRedis
) -> None:
    store.increment(KEY, 1, 60)
    store.increment(KEY, 2, 90)

    assert redis_client.ttl(KEY) == 60
    assert store.attempts(KEY) == 3


def test_increment_restores_missing_expiry(
    store: RedisCounterStore, redis_client: fakeredis.FakeRedis
) -> None:
    redis_client.set(KEY, 4)

    assert store.increment(KEY, 1, 30) == 5
    assert redis_client.ttl(KEY) == 30


def test_missing_key_reports_empty_window(store: RedisCounterStore) -> None:
    assert store.attempts("missing") == 0
    assert store.available_in("missing") == 0


def test_clear_drops_window(
    store: RedisCounterStore, redis_client: fakeredis.FakeRedis
) -> None:
    store.increment(KEY, 5, 60)

    store.clear(KEY)

    assert store.attempts(KEY) == 0
    assert redis_client.exists(KEY) == 0
    store.close()
