"""Broadcast hub: the single owner of the event log and the subscriber set.

Every mutation of the log or the registry, together with the pushes it
triggers, happens while holding ``BroadcastHub._lock``. A call to
:meth:`BroadcastHub.submit` is therefore a single linearization point: all
subscribers observe events in the order they were appended to the log, and a
subscriber registered concurrently either receives an event through its
``init`` snapshot or as ``newLog``, never both and never neither.

Pushes must not block. Socket subscribers enqueue on the transport and queue
subscribers use ``put_nowait``; any failure only drops the failing subscriber.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Hashable, Iterable, List

from services.bounded_log import BoundedLog
from services.errors import SubscriberUnreachable
from services.events import ClientEvent, EventRecord, utc_timestamp
from services.registry import Subscriber, SubscriberRegistry

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 500

INIT = "init"
NEW_LOG = "newLog"
CLIENT_COUNT = "clientCount"


def init_message(records: Iterable[EventRecord], total_clients: int) -> Dict[str, Any]:
    return {
        "type": INIT,
        "logs": [record.to_dict() for record in records],
        "totalClients": total_clients,
    }


def new_log_message(record: EventRecord) -> Dict[str, Any]:
    return {"type": NEW_LOG, "log": record.to_dict()}


def client_count_message(count: int) -> Dict[str, Any]:
    return {"type": CLIENT_COUNT, "count": count}


class BroadcastHub:
    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        *,
        clock: Callable[[], str] = utc_timestamp,
    ) -> None:
        self._log = BoundedLog(capacity)
        self._registry = SubscriberRegistry()
        self._clock = clock
        # Re-entrant: a transport may call back into unsubscribe from send.
        self._lock = threading.RLock()

    @property
    def capacity(self) -> int:
        return self._log.capacity

    @property
    def total(self) -> int:
        return len(self._log)

    @property
    def subscriber_count(self) -> int:
        return self._registry.size()

    def snapshot(self) -> List[EventRecord]:
        return self._log.all()

    def get_subscriber(self, handle: Hashable) -> Subscriber | None:
        return self._registry.get(handle)

    def submit(self, event: ClientEvent, source_address: str | None = None) -> EventRecord:
        """Ingest ``event`` and push it to every active subscriber."""
        with self._lock:
            record = EventRecord.ingest(
                event,
                server_timestamp=self._clock(),
                source_address=source_address,
            )
            self._log.append(record)
            failed = self._push_all(NEW_LOG, new_log_message(record))
            dropped = self._drop_failed(failed)
        self._close(dropped)
        logger.info(
            "%s from %s session=%s", record.kind.upper(), record.source_address, record.session_id
        )
        return record

    def subscribe(self, subscriber: Subscriber) -> Hashable:
        """Register ``subscriber``, send it the init snapshot and announce the new count."""
        with self._lock:
            handle = self._registry.add(subscriber)
            message = init_message(self._log.all(), self._registry.size())
            failed = []
            if not self._push(subscriber, INIT, message):
                failed.append(subscriber)
            failed.extend(self._push_all(CLIENT_COUNT, client_count_message(self._registry.size())))
            dropped = self._drop_failed(failed)
        self._close(dropped)
        logger.info("Subscriber %s connected. Total clients: %s", handle, self.subscriber_count)
        return handle

    def unsubscribe(self, handle: Hashable) -> bool:
        """Remove the subscriber behind ``handle``; unknown handles are ignored."""
        with self._lock:
            removed = self._registry.remove(handle)
            if removed is None:
                return False
            failed = self._push_all(CLIENT_COUNT, client_count_message(self._registry.size()))
            dropped = self._drop_failed(failed)
        self._close(dropped)
        logger.info("Subscriber %s disconnected. Total clients: %s", handle, self.subscriber_count)
        return True

    def _push(self, subscriber: Subscriber, event: str, payload: Dict[str, Any]) -> bool:
        try:
            subscriber.send(event, payload)
        except SubscriberUnreachable as exc:
            logger.warning("Dropping subscriber %s: %s", subscriber.key, exc)
            return False
        except Exception:  # noqa: BLE001 - a broken subscriber must not abort the broadcast
            logger.exception("Unexpected error sending %s to subscriber %s", event, subscriber.key)
            return False
        return True

    def _push_all(self, event: str, payload: Dict[str, Any]) -> List[Subscriber]:
        return [
            subscriber
            for subscriber in self._registry.enumerate()
            if not self._push(subscriber, event, payload)
        ]

    def _drop_failed(self, failed: List[Subscriber]) -> List[Subscriber]:
        """Remove failed subscribers and announce the count until no push fails."""
        dropped = []
        while failed:
            removed_any = False
            for subscriber in failed:
                if self._registry.remove(subscriber.key) is not None:
                    dropped.append(subscriber)
                    removed_any = True
            if not removed_any:
                break
            failed = self._push_all(CLIENT_COUNT, client_count_message(self._registry.size()))
        return dropped

    def _close(self, subscribers: List[Subscriber]) -> None:
        for subscriber in subscribers:
            close = getattr(subscriber, "close", None)
            if close is None:
                continue
            try:
                close()
            except Exception:  # noqa: BLE001
                logger.exception("Error closing subscriber %s", subscriber.key)
