import json
import logging

from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context

from services.errors import MalformedInput, UnsupportedOperation
from services.events import parse_client_event
from services.realtime import client_address, current_hub, current_throttle
from services.subscribers import QueueSubscriber

logs_bp = Blueprint("logs", __name__)
logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("GET", "POST", "OPTIONS")
# Se registran también los métodos no soportados para responder 405 en JSON.
ROUTED_METHODS = SUPPORTED_METHODS + ("PUT", "PATCH", "DELETE")


@logs_bp.after_request
def add_cors_headers(response):
    response.headers["Access-Control-Allow-Credentials"] = "true"
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = ",".join(SUPPORTED_METHODS)
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return response


@logs_bp.errorhandler(UnsupportedOperation)
def handle_unsupported(exc):
    return jsonify({"success": False, "error": str(exc)}), 405


@logs_bp.errorhandler(MalformedInput)
def handle_malformed(exc):
    logger.warning("Rejected malformed log from %s: %s", client_address(request), exc)
    return jsonify({"success": False, "error": str(exc)}), 400


@logs_bp.route("/api/logs", methods=ROUTED_METHODS)
def logs():
    """Polling endpoint: list the buffered logs or submit a new one."""

    if request.method == "OPTIONS":
        return "", 200
    if request.method in ("GET", "HEAD"):
        return _list_logs()
    if request.method == "POST":
        return _create_log()
    raise UnsupportedOperation("Method not allowed")


def _list_logs():
    hub = current_hub()
    records = hub.snapshot()
    # Los clientes de polling esperan el más reciente primero.
    if request.args.get("order", "desc").lower() != "asc":
        records.reverse()
    return jsonify(
        {
            "success": True,
            "logs": [record.to_dict() for record in records],
            "total": len(records),
        }
    )


def _create_log():
    hub = current_hub()
    payload = request.get_json(silent=True)
    if payload is None:
        raise MalformedInput("request body must be a JSON object")
    event = parse_client_event(payload, user_agent=request.headers.get("User-Agent"))

    if not current_throttle().allow(event.session_id, event.kind):
        logger.debug("Throttled %s event from session=%s", event.kind, event.session_id)
        return jsonify({"success": False, "error": "Too many events", "total": hub.total}), 429

    record = hub.submit(event, source_address=client_address(request))
    return jsonify({"success": True, "log": record.to_dict(), "total": hub.total})


def _sse(event, payload):
    return f"event: {event}\ndata: {json.dumps(payload)}\n\n"


@logs_bp.route("/api/logs/stream")
def stream_logs():
    """Server-sent events feed with the same messages as the socket transport."""

    hub = current_hub()
    keepalive = current_app.config["STREAM_KEEPALIVE_SECONDS"]
    subscriber = QueueSubscriber(maxsize=current_app.config["STREAM_QUEUE_SIZE"])

    @stream_with_context
    def generate():
        hub.subscribe(subscriber)
        try:
            while not subscriber.closed:
                item = subscriber.get(timeout=keepalive)
                if item is None:
                    yield ": keepalive\n\n"
                    continue
                yield _sse(*item)
        finally:
            hub.unsubscribe(subscriber.key)

    return Response(
        generate(),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@logs_bp.route("/health")
def health():
    hub = current_hub()
    return jsonify(
        {
            "ok": True,
            "logs": hub.total,
            "clients": hub.subscriber_count,
            "capacity": hub.capacity,
        }
    )
