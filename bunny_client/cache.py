# =============================================================================
# Bunny Client -- Shared Cache
# =============================================================================
#
# Key/value store with TTL and atomic increment, shared by every client
# that talks to the same broker identity. The in-memory store covers one
# process; the Redis store covers processes and machines.
# =============================================================================

from __future__ import annotations

import hashlib
import threading
import time
from typing import Any, Callable, Protocol, runtime_checkable

import orjson

from .constants import CACHE_KEY_PREFIX
from .types import BrokerIdentity

try:
    import redis

    _HAS_REDIS = True
except ImportError:
    _HAS_REDIS = False


def cache_key(identity: BrokerIdentity, prefix: str = CACHE_KEY_PREFIX) -> str:
    """Derive the shared cache key for a broker identity.

    The identity is hashed so the password never appears in the key.
    Fields are JSON-encoded before hashing, so no two identities
    produce the same input.
    """
    material = orjson.dumps(
        [identity.host, identity.port, identity.vhost, identity.user, identity.password]
    )
    return prefix + hashlib.sha256(material).hexdigest()


@runtime_checkable
class SharedCache(Protocol):
    """Cache capability used for session tokens and request ids.

    ``incr`` must be atomic across every caller sharing the store.
    """

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str | int, ttl: float | None = None) -> None: ...

    def incr(self, key: str) -> int: ...

    def delete(self, key: str) -> None: ...


class InMemorySharedCache:
    """Thread-safe in-process cache with per-entry expiry.

    Args:
        clock: Monotonic time source, replaceable in tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._data: dict[str, tuple[Any, float | None]] = {}

    def get(self, key: str) -> str | None:
        with self._lock:
            value = self._live(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str | int, ttl: float | None = None) -> None:
        expires = self._clock() + ttl if ttl is not None else None
        with self._lock:
            self._data[key] = (value, expires)

    def incr(self, key: str) -> int:
        with self._lock:
            current = self._live(key)
            value = int(current) + 1 if current is not None else 1
            _, expires = self._data.get(key, (None, None))
            self._data[key] = (value, expires if current is not None else None)
            return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def ttl(self, key: str) -> float | None:
        """Seconds until *key* expires, ``None`` if absent or persistent."""
        with self._lock:
            if self._live(key) is None:
                return None
            _, expires = self._data[key]
        if expires is None:
            return None
        return expires - self._clock()

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for key in list(self._data) if self._live(key) is not None)

    def _live(self, key: str) -> Any:
        # Caller holds the lock.
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires = entry
        if expires is not None and expires <= self._clock():
            del self._data[key]
            return None
        return value


class RedisSharedCache:
    """Cache backed by a Redis server, shared across processes.

    Args:
        client: A ``redis.Redis`` instance (from a shared pool).
    """

    def __init__(self, client: Any) -> None:
        if not _HAS_REDIS:
            raise ImportError(
                "redis package required: pip install bunny-client[redis]"
            )
        if client is None:
            raise ValueError("client is required")
        self._client = client

    @classmethod
    def from_url(cls, url: str = "redis://localhost:6379/0", **kwargs: Any) -> RedisSharedCache:
        if not _HAS_REDIS:
            raise ImportError(
                "redis package required: pip install bunny-client[redis]"
            )
        return cls(redis.Redis.from_url(url, **kwargs))

    @staticmethod
    def available() -> bool:
        return _HAS_REDIS

    def get(self, key: str) -> str | None:
        value = self._client.get(key)
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode()
        return str(value)

    def set(self, key: str, value: str | int, ttl: float | None = None) -> None:
        if ttl is not None:
            self._client.set(key, value, px=max(1, int(ttl * 1000)))
        else:
            self._client.set(key, value)

    def incr(self, key: str) -> int:
        # INCR is atomic on the server and treats a missing key as 0.
        return int(self._client.incr(key))

    def delete(self, key: str) -> None:
        self._client.delete(key)

    def ttl(self, key: str) -> float | None:
        remaining = self._client.pttl(key)
        if remaining is None or remaining < 0:
            return None
        return remaining / 1000.0
