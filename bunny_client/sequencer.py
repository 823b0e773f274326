# =============================================================================
# Bunny Client -- Request Id Sequencer
# =============================================================================
#
# Request ids live in the shared cache so every client with the same broker
# identity draws from one counter.
# =============================================================================

from __future__ import annotations

from .cache import SharedCache
from .constants import ID_SUFFIX


class IdSequencer:
    """Monotonic request ids scoped to a cache key."""

    def __init__(self, cache: SharedCache) -> None:
        self._cache = cache

    @staticmethod
    def counter_key(cache_key: str) -> str:
        return cache_key + ID_SUFFIX

    def next(self, cache_key: str) -> int:
        """Atomically increment and return the id for *cache_key*.

        A missing counter starts at 1.
        """
        return self._cache.incr(self.counter_key(cache_key))

    def reset(self, cache_key: str) -> None:
        """Restart the sequence; the next id is 1."""
        self._cache.set(self.counter_key(cache_key), 0)

    def current(self, cache_key: str) -> int:
        value = self._cache.get(self.counter_key(cache_key))
        return int(value) if value is not None else 0
