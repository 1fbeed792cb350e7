"""Fixed-capacity, append-only buffer of ingested events."""

from __future__ import annotations

import threading
from collections import deque
from typing import List

from services.events import EventRecord


class BoundedLog:
    """Keeps the most recent ``capacity`` records, oldest first."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._records: deque[EventRecord] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._records.maxlen

    def append(self, record: EventRecord) -> None:
        """Add ``record`` at the tail, evicting the oldest entry when full."""
        with self._lock:
            self._records.append(record)

    def all(self) -> List[EventRecord]:
        """Return a snapshot of the buffer as of this call."""
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
