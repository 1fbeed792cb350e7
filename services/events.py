"""Value types for logged interactions and their wire representation."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping

from services.errors import MalformedInput
from services.user_agent import UNKNOWN, classify_user_agent

UNKNOWN_ADDRESS = "unknown"


def utc_timestamp(now: datetime | None = None) -> str:
    """Return an ISO-8601 UTC timestamp with millisecond precision."""

    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def _frozen_details(details: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(details or {}))


@dataclass(frozen=True)
class ClientEvent:
    kind: str
    session_id: str
    client_timestamp: str | None = None
    browser: str = UNKNOWN
    os: str = UNKNOWN
    details: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "details", _frozen_details(self.details))


@dataclass(frozen=True)
class EventRecord:
    """An interaction after ingestion by the hub.

    ``server_timestamp`` and ``source_address`` are assigned once, by the
    hub, and are never taken from client input.
    """

    kind: str
    session_id: str
    client_timestamp: str | None
    browser: str
    os: str
    details: Mapping[str, Any]
    server_timestamp: str
    source_address: str

    def __post_init__(self):
        object.__setattr__(self, "details", _frozen_details(self.details))

    @classmethod
    def ingest(
        cls,
        event: ClientEvent,
        *,
        server_timestamp: str,
        source_address: str | None = None,
    ) -> "EventRecord":
        return cls(
            kind=event.kind,
            session_id=event.session_id,
            client_timestamp=event.client_timestamp,
            browser=event.browser,
            os=event.os,
            details=event.details,
            server_timestamp=server_timestamp,
            source_address=source_address or UNKNOWN_ADDRESS,
        )

    def to_dict(self) -> dict:
        return {
            "type": self.kind,
            "timestamp": self.client_timestamp,
            "sessionId": self.session_id,
            "browser": self.browser,
            "os": self.os,
            "details": dict(self.details),
            "serverTimestamp": self.server_timestamp,
            "clientIp": self.source_address,
        }


def _required_text(payload: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = payload.get(key)
        if value is None:
            continue
        if not isinstance(value, str) or not value.strip():
            raise MalformedInput(f"'{keys[0]}' must be a non-empty string")
        return value.strip()
    raise MalformedInput(f"'{keys[0]}' is required")


def _optional_text(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedInput(f"'{key}' must be a string")
    return value.strip() or None


def _client_timestamp(payload: Mapping[str, Any]) -> str | None:
    value = payload.get("timestamp", payload.get("clientTimestamp"))
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise MalformedInput("'timestamp' must be a string or a number")
    return str(value)


def _details(payload: Mapping[str, Any]) -> dict:
    raw = payload.get("details")
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise MalformedInput("'details' must be an object")
    details = {}
    for key, value in raw.items():
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise MalformedInput(f"detail '{key}' must be a string or a number")
        details[str(key)] = value
    return details


def parse_client_event(payload: Any, *, user_agent: str | None = None) -> ClientEvent:
    """Validate a client payload and build a :class:`ClientEvent`.

    Server-side fields present in ``payload`` are ignored. ``browser`` and
    ``os`` fall back to a classification of ``user_agent`` when the client
    omits them.
    """

    if not isinstance(payload, Mapping):
        raise MalformedInput("event payload must be an object")

    kind = _required_text(payload, "type", "kind")
    session_id = _required_text(payload, "sessionId")
    browser = _optional_text(payload, "browser")
    os_name = _optional_text(payload, "os")
    if browser is None or os_name is None:
        ua_browser, ua_os = classify_user_agent(user_agent)
        browser = browser or ua_browser
        os_name = os_name or ua_os

    return ClientEvent(
        kind=kind,
        session_id=session_id,
        client_timestamp=_client_timestamp(payload),
        browser=browser,
        os=os_name,
        details=_details(payload),
    )


def parse_log_envelope(raw: Any) -> Mapping[str, Any] | None:
    """Unwrap a push-variant ``{"type": "log", "log": {...}}`` envelope.

    Accepts a mapping or its JSON text. Returns ``None`` for well-formed
    envelopes of another type.
    """

    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MalformedInput(f"invalid JSON: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise MalformedInput("message must be an object")
    if raw.get("type") != "log":
        return None
    log = raw.get("log")
    if not isinstance(log, Mapping):
        raise MalformedInput("'log' must be an object")
    return log
