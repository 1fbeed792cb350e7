from __future__ import annotations

import logging
import os
from typing import Any, Dict

from flask import current_app
from flask_socketio import SocketIO

from services.errors import SubscriberUnreachable
from services.events import UNKNOWN_ADDRESS

logger = logging.getLogger(__name__)

ALLOWED_ASYNC_MODES = {"eventlet", "gevent", "gevent_uwsgi", "threading"}
ASYNC_MODE = os.getenv("SOCKETIO_ASYNC_MODE", "threading")
if ASYNC_MODE not in ALLOWED_ASYNC_MODES:
    ASYNC_MODE = "threading"
socketio = SocketIO(async_mode=ASYNC_MODE, cors_allowed_origins="*")


def init_app(app):
    socketio.init_app(app)
    return socketio


def _is_socket_ready():
    return socketio.server is not None


class SocketSubscriber:
    """Hub subscriber bound to a single Socket.IO connection."""

    def __init__(self, sid: str, address: str | None = None, namespace: str = "/") -> None:
        self.key = sid
        self.address = address
        self.namespace = namespace

    def send(self, event: str, payload: Dict[str, Any]) -> None:
        if not _is_socket_ready():
            raise SubscriberUnreachable("socket server not initialised")
        try:
            socketio.emit(event, payload, to=self.key, namespace=self.namespace)
        except (OSError, ValueError, KeyError) as exc:
            raise SubscriberUnreachable(str(exc)) from exc

    def close(self) -> None:
        if not _is_socket_ready():
            return
        try:
            socketio.server.disconnect(self.key, namespace=self.namespace)
        except (OSError, ValueError, KeyError):
            logger.debug("Socket %s already closed", self.key)


def current_hub():
    """Return the :class:`~services.hub.BroadcastHub` bound to the running app."""
    return current_app.extensions["activity_hub"]


def current_throttle():
    return current_app.extensions["event_throttle"]


def client_address(req) -> str:
    """Best-effort address of the client behind ``req``."""
    forwarded = (req.headers.get("X-Forwarded-For") or "").split(",")[0].strip()
    address = forwarded or req.headers.get("X-Real-IP") or req.remote_addr
    return address or UNKNOWN_ADDRESS
