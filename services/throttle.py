"""Rate limiting of client events before they reach the hub."""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Mapping, Tuple

MAX_TRACKED_KEYS = 10_000


class EventThrottle:
    """Enforce a minimum interval between events of one kind from one session.

    Kinds absent from ``intervals`` (or with a non-positive interval) are
    never throttled.
    """

    def __init__(
        self,
        intervals: Mapping[str, float],
        clock: Callable[[], float] = time.monotonic,
        max_keys: int = MAX_TRACKED_KEYS,
    ) -> None:
        self.intervals = {kind: float(value) for kind, value in intervals.items() if value and value > 0}
        self._clock = clock
        self._max_keys = max_keys
        self._last_seen: Dict[Tuple[str, str], float] = {}
        self._lock = threading.Lock()

    def allow(self, session_id: str, kind: str) -> bool:
        interval = self.intervals.get(kind)
        if interval is None:
            return True
        now = self._clock()
        key = (session_id, kind)
        with self._lock:
            last = self._last_seen.get(key)
            if last is not None and now - last < interval:
                return False
            self._last_seen[key] = now
            if len(self._last_seen) > self._max_keys:
                self._prune(now)
        return True

    def _prune(self, now: float) -> None:
        longest = max(self.intervals.values())
        stale = [key for key, seen in self._last_seen.items() if now - seen >= longest]
        for key in stale:
            del self._last_seen[key]
