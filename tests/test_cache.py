"""Tests for shared cache backends and cache key derivation."""

from unittest.mock import MagicMock

import fakeredis
import pytest

from bunny_client.cache import (
    InMemorySharedCache,
    RedisSharedCache,
    SharedCache,
    cache_key,
)
from bunny_client.sequencer import IdSequencer
from bunny_client.types import BrokerIdentity


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestCacheKey:
    def test_deterministic(self):
        a = BrokerIdentity("rabbit1", 55672, "/", "guest", "secret")
        b = BrokerIdentity("rabbit1", 55672, "/", "guest", "secret")
        assert cache_key(a) == cache_key(b)

    @pytest.mark.parametrize(
        "other",
        [
            BrokerIdentity("rabbit2", 55672, "/", "guest", "secret"),
            BrokerIdentity("rabbit1", 55673, "/", "guest", "secret"),
            BrokerIdentity("rabbit1", 55672, "/prod", "guest", "secret"),
            BrokerIdentity("rabbit1", 55672, "/", "admin", "secret"),
            BrokerIdentity("rabbit1", 55672, "/", "guest", "other"),
        ],
    )
    def test_differing_identities_differ(self, other):
        base = BrokerIdentity("rabbit1", 55672, "/", "guest", "secret")
        assert cache_key(base) != cache_key(other)

    def test_field_boundaries_do_not_collide(self):
        a = BrokerIdentity("h", 1, "/", "user:x", "pw")
        b = BrokerIdentity("h", 1, "/", "user", "x:pw")
        assert cache_key(a) != cache_key(b)

    def test_password_not_visible(self):
        identity = BrokerIdentity("rabbit1", password="hunter2")
        key = cache_key(identity)
        assert "hunter2" not in key
        assert key.startswith("bunny:")

    def test_custom_prefix(self):
        assert cache_key(BrokerIdentity("h"), prefix="app:").startswith("app:")


class TestInMemorySharedCache:
    def test_satisfies_protocol(self):
        assert isinstance(InMemorySharedCache(), SharedCache)

    def test_get_missing(self, cache):
        assert cache.get("nope") is None

    def test_set_get(self, cache):
        cache.set("k", "v")
        assert cache.get("k") == "v"

    def test_values_read_back_as_strings(self, cache):
        cache.set("n", 0)
        assert cache.get("n") == "0"

    def test_expiry(self):
        clock = FakeClock()
        cache = InMemorySharedCache(clock=clock)
        cache.set("k", "v", ttl=10)
        clock.advance(9.9)
        assert cache.get("k") == "v"
        clock.advance(0.2)
        assert cache.get("k") is None

    def test_ttl_remaining(self):
        clock = FakeClock()
        cache = InMemorySharedCache(clock=clock)
        cache.set("k", "v", ttl=26.25)
        clock.advance(1.25)
        assert cache.ttl("k") == pytest.approx(25.0)

    def test_ttl_none_without_expiry(self, cache):
        cache.set("k", "v")
        assert cache.ttl("k") is None
        assert cache.ttl("missing") is None

    def test_incr_initializes_to_one(self, cache):
        assert cache.incr("c") == 1
        assert cache.incr("c") == 2

    def test_incr_after_set_zero(self, cache):
        cache.set("c", 0)
        assert cache.incr("c") == 1

    def test_incr_keeps_expiry(self):
        clock = FakeClock()
        cache = InMemorySharedCache(clock=clock)
        cache.set("c", 5, ttl=10)
        assert cache.incr("c") == 6
        clock.advance(11)
        assert cache.get("c") is None
        assert cache.incr("c") == 1

    def test_delete(self, cache):
        cache.set("k", "v")
        cache.delete("k")
        cache.delete("k")
        assert cache.get("k") is None

    def test_len_and_clear(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        assert len(cache) == 2
        cache.clear()
        assert len(cache) == 0


class TestRedisSharedCache:
    @pytest.fixture()
    def redis_client(self):
        return MagicMock()

    def test_requires_client(self):
        with pytest.raises(ValueError):
            RedisSharedCache(None)

    def test_satisfies_protocol(self, redis_client):
        assert isinstance(RedisSharedCache(redis_client), SharedCache)

    def test_get_decodes_bytes(self, redis_client):
        redis_client.get.return_value = b"F01F0D5A"
        assert RedisSharedCache(redis_client).get("k") == "F01F0D5A"

    def test_get_missing(self, redis_client):
        redis_client.get.return_value = None
        assert RedisSharedCache(redis_client).get("k") is None

    def test_set_with_ttl_uses_milliseconds(self, redis_client):
        RedisSharedCache(redis_client).set("k", "tok", ttl=26.25)
        redis_client.set.assert_called_once_with("k", "tok", px=26250)

    def test_set_without_ttl(self, redis_client):
        RedisSharedCache(redis_client).set("k", 0)
        redis_client.set.assert_called_once_with("k", 0)

    def test_incr_is_server_side(self, redis_client):
        redis_client.incr.return_value = 3
        assert RedisSharedCache(redis_client).incr("k") == 3
        redis_client.incr.assert_called_once_with("k")

    def test_delete(self, redis_client):
        RedisSharedCache(redis_client).delete("k")
        redis_client.delete.assert_called_once_with("k")

    def test_ttl(self, redis_client):
        redis_client.pttl.return_value = 1500
        assert RedisSharedCache(redis_client).ttl("k") == 1.5
        redis_client.pttl.return_value = -2
        assert RedisSharedCache(redis_client).ttl("k") is None


class TestRedisSharedCacheAgainstServer:
    """Same operations against an in-process Redis server."""

    @pytest.fixture()
    def store(self):
        return RedisSharedCache(fakeredis.FakeRedis())

    def test_set_get(self, store):
        store.set("k", "F01F0D5A")
        assert store.get("k") == "F01F0D5A"

    def test_get_missing(self, store):
        assert store.get("missing") is None

    def test_set_with_ttl_expires_on_server(self, store):
        store.set("k", "tok", ttl=26.25)
        remaining = store.ttl("k")
        assert remaining is not None
        assert 0 < remaining <= 26.25

    def test_ttl_none_without_expiry(self, store):
        store.set("k", "tok")
        assert store.ttl("k") is None
        assert store.ttl("missing") is None

    def test_incr_initializes_to_one(self, store):
        assert store.incr("k:id") == 1
        assert store.incr("k:id") == 2
        assert store.get("k:id") == "2"

    def test_incr_after_set_zero(self, store):
        store.incr("k:id")
        store.set("k:id", 0)
        assert store.incr("k:id") == 1

    def test_delete(self, store):
        store.set("k", "tok")
        store.delete("k")
        assert store.get("k") is None
        store.delete("k")

    def test_sequencer_over_redis(self, store):
        seq = IdSequencer(store)
        assert [seq.next("k"), seq.next("k")] == [1, 2]
        seq.reset("k")
        assert seq.next("k") == 1
