# internhub/services/query_cache.py
"""
Query result cache with TTL and prefix invalidation.

Keys are tuples such as ``("notifications", user_id, ...)`` so a single
``invalidate(("notifications", user_id))`` drops every cached variant of that
actor's list. One instance is created per process and passed in explicitly.
"""
import time
from typing import Any, Callable, Dict, Optional, Tuple

CacheKey = Tuple[Any, ...]


def notifications_key(user_id: str) -> CacheKey:
    return ("notifications", user_id)


def unread_count_key(user_id: str) -> CacheKey:
    return ("unread_count", user_id)


class QueryCache:

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._store: Dict[CacheKey, dict] = {}
        self._clock = clock
        self.invalidations = 0

    def get(self, key: CacheKey) -> Optional[Any]:
        entry = self._store.get(key)
        if not entry:
            return None
        if self._clock() > entry["expires_at"]:
            del self._store[key]
            return None
        return entry["data"]

    def set(self, key: CacheKey, data: Any, ttl_seconds: float = 30):
        self._store[key] = {
            "data": data,
            "expires_at": self._clock() + ttl_seconds,
        }

    def patch(self, key: CacheKey, fn: Callable[[Any], Any]) -> bool:
        """Replace a live entry's data with ``fn(data)``, keeping its expiry."""
        entry = self._store.get(key)
        if not entry or self._clock() > entry["expires_at"]:
            return False
        entry["data"] = fn(entry["data"])
        return True

    def invalidate(self, prefix: CacheKey) -> int:
        """Drop every key starting with ``prefix``. Returns how many were dropped."""
        doomed = [k for k in self._store if k[:len(prefix)] == prefix]
        for k in doomed:
            del self._store[k]
        self.invalidations += 1
        return len(doomed)

    def keys_for(self, prefix: CacheKey):
        return [k for k in self._store if k[:len(prefix)] == prefix]

    def clear(self):
        self._store.clear()
