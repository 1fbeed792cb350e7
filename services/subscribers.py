"""In-process subscriber backed by a bounded queue."""

from __future__ import annotations

import queue
import uuid
from typing import Any, Dict, Tuple

from services.errors import SubscriberUnreachable


class QueueSubscriber:
    """Subscriber whose messages are consumed from a per-listener queue.

    ``send`` never blocks: when the consumer falls behind and the queue is
    full the subscriber is reported unreachable and the hub drops it.
    """

    def __init__(self, maxsize: int = 64, key: str | None = None) -> None:
        self.key = key or uuid.uuid4().hex
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self.closed = False

    def send(self, event: str, payload: Dict[str, Any]) -> None:
        if self.closed:
            raise SubscriberUnreachable("subscriber is closed")
        try:
            self._queue.put_nowait((event, payload))
        except queue.Full:
            raise SubscriberUnreachable(
                f"queue full ({self._queue.maxsize} pending messages)"
            ) from None

    def get(self, timeout: float | None = None) -> Tuple[str, Dict[str, Any]] | None:
        """Return the next ``(event, payload)`` or ``None`` after ``timeout``."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list:
        items = []
        while True:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                return items

    def close(self) -> None:
        self.closed = True
