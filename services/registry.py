"""Live set of connected subscribers."""

from __future__ import annotations

import threading
from typing import Any, Dict, Hashable, List, Protocol


class Subscriber(Protocol):
    key: Hashable

    def send(self, event: str, payload: Dict[str, Any]) -> None:
        ...


class SubscriberRegistry:
    """Subscribers keyed by their connection, in registration order."""

    def __init__(self) -> None:
        self._subscribers: Dict[Hashable, Subscriber] = {}
        self._lock = threading.Lock()

    def add(self, subscriber: Subscriber) -> Hashable:
        """Register ``subscriber`` and return the handle used to remove it.

        A connection that is already registered keeps its single entry.
        """
        handle = subscriber.key
        with self._lock:
            self._subscribers[handle] = subscriber
        return handle

    def remove(self, handle: Hashable) -> Subscriber | None:
        with self._lock:
            return self._subscribers.pop(handle, None)

    def get(self, handle: Hashable) -> Subscriber | None:
        with self._lock:
            return self._subscribers.get(handle)

    def enumerate(self) -> List[Subscriber]:
        with self._lock:
            return list(self._subscribers.values())

    def size(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, handle: Hashable) -> bool:
        with self._lock:
            return handle in self._subscribers
