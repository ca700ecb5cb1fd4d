"""Debounce for play counting.

A seek-heavy session or a player that re-requests offset 0 while buffering
must count as one play. State is process-local: a restart or a second
instance starts with an empty map, which at worst counts an extra play.
"""

import threading
from time import monotonic
from typing import Callable


class PlayDebouncer:
    """Bounded (track, user) -> last counted play time map.

    Once the map holds more than `max_entries`, entries older than
    `prune_age_seconds` are dropped. The bound is approximate, not an LRU.
    """

    def __init__(
        self,
        window_seconds: float = 30.0,
        max_entries: int = 10000,
        prune_age_seconds: float = 60.0,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self.window_seconds = window_seconds
        self.max_entries = max_entries
        self.prune_age_seconds = prune_age_seconds
        self._clock = clock
        self._last_counted: dict[tuple[str, str], float] = {}
        self._lock = threading.Lock()

    def should_count(self, track_id: str, user_id: str) -> bool:
        """Claim a play for (track, user); True if it should be counted.

        A True result records the current time, so concurrent callers for the
        same pair cannot both be admitted.
        """
        key = (track_id, user_id)
        with self._lock:
            now = self._clock()
            last = self._last_counted.get(key)
            # Counts only once strictly more than the window has passed
            if last is not None and now - last <= self.window_seconds:
                return False

            self._last_counted[key] = now
            if len(self._last_counted) > self.max_entries:
                self._prune(now)
            return True

    def _prune(self, now: float) -> None:
        cutoff = now - self.prune_age_seconds
        stale = [k for k, t in self._last_counted.items() if t < cutoff]
        for k in stale:
            del self._last_counted[k]

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_counted)
