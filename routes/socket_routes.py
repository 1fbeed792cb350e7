import logging

from flask import request
from flask_socketio import emit

from services.errors import MalformedInput
from services.events import parse_client_event, parse_log_envelope
from services.realtime import (
    SocketSubscriber,
    client_address,
    current_hub,
    current_throttle,
    socketio,
)

logger = logging.getLogger(__name__)


@socketio.on("connect")
def handle_connect():
    address = client_address(request)
    logger.info("New connection from %s (sid=%s)", address, request.sid)
    current_hub().subscribe(SocketSubscriber(request.sid, address))


@socketio.on("disconnect")
def handle_disconnect(*args):
    current_hub().unsubscribe(request.sid)


def _ingest(*args):
    hub = current_hub()
    try:
        if len(args) != 1:
            raise MalformedInput(f"expected a single payload, got {len(args)}")
        raw = args[0]
        payload = parse_log_envelope(raw)
        if payload is None:
            logger.debug("Ignoring non-log message from sid=%s", request.sid)
            return
        event = parse_client_event(payload, user_agent=request.headers.get("User-Agent"))
    except MalformedInput as exc:
        logger.warning("Rejected malformed message from sid=%s: %s", request.sid, exc)
        emit("log_error", {"error": str(exc)})
        return

    if not current_throttle().allow(event.session_id, event.kind):
        logger.debug("Throttled %s event from session=%s", event.kind, event.session_id)
        return

    subscriber = hub.get_subscriber(request.sid)
    address = subscriber.address if subscriber is not None else client_address(request)
    hub.submit(event, source_address=address)


@socketio.on("log")
def handle_log(*args):
    _ingest(*args)


@socketio.on("message")
def handle_message(*args):
    _ingest(*args)
