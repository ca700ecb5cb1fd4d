"""Short-lived in-process cache for track metadata.

Entries are not authoritative: a hit may be stale for up to the TTL. Misses
fall through to the database and repopulate the cache.
"""

import threading
from time import monotonic
from typing import Any, Callable, Optional

from loguru import logger


def track_meta_key(track_id: str) -> str:
    return f"track:meta:{track_id}"


class TTLCache:
    """Thread-safe key -> value cache with per-entry expiry.

    Streaming handlers run in the threadpool, so access is guarded by a lock.
    """

    def __init__(
        self, ttl_seconds: float = 3600, clock: Callable[[], float] = monotonic
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}  # key -> (value, expires_at)
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() < expires_at:
                return value
            # Expired - remove from cache
            del self._entries[key]
            return None

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def prune_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        with self._lock:
            expired_keys = [k for k, (_, exp) in self._entries.items() if exp <= now]
            for key in expired_keys:
                del self._entries[key]

        if expired_keys:
            logger.debug(f"Pruned {len(expired_keys)} expired cache entries")
        return len(expired_keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
