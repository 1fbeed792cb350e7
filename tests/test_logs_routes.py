import logging
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from services.events import ClientEvent


def _log(session, kind="visit", **details):
    return {
        "type": kind,
        "timestamp": "2026-10-19T10:00:00.000Z",
        "sessionId": session,
        "browser": "Chrome",
        "os": "Linux",
        "details": details or {"url": "https://example.com/", "referrer": "direct"},
    }


def test_post_then_get_returns_newest_first(client):
    first = client.post("/api/logs", json=_log("e1"))
    second = client.post("/api/logs", json=_log("e2"))

    assert first.status_code == 200
    assert first.get_json()["total"] == 1
    assert second.get_json()["success"] is True
    assert second.get_json()["total"] == 2

    response = client.get("/api/logs")
    data = response.get_json()

    assert response.status_code == 200
    assert data["success"] is True
    assert data["total"] == 2
    assert [log["sessionId"] for log in data["logs"]] == ["e2", "e1"]

    again = client.get("/api/logs")
    assert again.get_json() == data


def test_get_supports_chronological_order(client):
    for session in ("e1", "e2", "e3"):
        client.post("/api/logs", json=_log(session))

    data = client.get("/api/logs?order=asc").get_json()

    assert [log["sessionId"] for log in data["logs"]] == ["e1", "e2", "e3"]


def test_total_is_bounded_by_capacity(client):
    for n in range(1, 6):
        client.post("/api/logs", json=_log(f"e{n}"))

    data = client.get("/api/logs").get_json()

    assert data["total"] == 3
    assert [log["sessionId"] for log in data["logs"]] == ["e5", "e4", "e3"]


def test_post_stamps_server_fields(client):
    body = _log("e1")
    body["serverTimestamp"] = "1999-01-01T00:00:00.000Z"
    body["clientIp"] = "6.6.6.6"

    response = client.post(
        "/api/logs",
        json=body,
        headers={"X-Forwarded-For": "203.0.113.5, 10.0.0.1"},
    )
    log = response.get_json()["log"]

    assert log["clientIp"] == "203.0.113.5"
    assert log["serverTimestamp"] != "1999-01-01T00:00:00.000Z"
    assert log["serverTimestamp"].endswith("Z")
    assert log["details"] == {"url": "https://example.com/", "referrer": "direct"}


def test_post_uses_real_ip_header_and_user_agent(client):
    body = {"type": "visit", "sessionId": "e1"}

    response = client.post(
        "/api/logs",
        json=body,
        headers={
            "X-Real-IP": "192.0.2.44",
            "User-Agent": "Mozilla/5.0 (X11; Linux x86_64; rv:125.0) Gecko/20100101 Firefox/125.0",
        },
    )
    log = response.get_json()["log"]

    assert log["clientIp"] == "192.0.2.44"
    assert (log["browser"], log["os"]) == ("Firefox", "Linux")


def test_malformed_post_returns_400_and_keeps_total(client, caplog):
    caplog.set_level(logging.WARNING, logger="routes.logs_routes")
    client.post("/api/logs", json=_log("e1"))

    bad_json = client.post("/api/logs", data="{not json", content_type="application/json")
    missing_session = client.post("/api/logs", json={"type": "click"})

    for response in (bad_json, missing_session):
        assert response.status_code == 400
        assert response.get_json()["success"] is False
        assert response.get_json()["error"]

    assert client.get("/api/logs").get_json()["total"] == 1
    assert "Rejected malformed log" in caplog.text


def test_options_returns_empty_success(client):
    response = client.options("/api/logs")

    assert response.status_code == 200
    assert response.data == b""
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["Access-Control-Allow-Methods"] == "GET,POST,OPTIONS"


def test_other_methods_are_not_allowed(client, hub):
    for method in (client.put, client.delete, client.patch):
        response = method("/api/logs", json=_log("e1"))
        assert response.status_code == 405
        assert response.get_json()["error"] == "Method not allowed"

    assert hub.total == 0


def test_cors_headers_on_get(client):
    response = client.get("/api/logs")

    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["Access-Control-Allow-Headers"] == "Content-Type"


def test_repeated_clicks_are_throttled(client):
    first = client.post("/api/logs", json=_log("clicker", kind="click", element="BUTTON"))
    second = client.post("/api/logs", json=_log("clicker", kind="click", element="BUTTON"))

    assert first.status_code == 200
    assert second.status_code == 429
    assert second.get_json() == {"success": False, "error": "Too many events", "total": 1}


def test_health_reports_hub_state(client, hub):
    hub.submit(ClientEvent(kind="visit", session_id="s1"))

    assert client.get("/health").get_json() == {
        "ok": True,
        "logs": 1,
        "clients": 0,
        "capacity": 3,
    }


def test_event_stream_pushes_hub_messages(client, hub):
    response = client.get("/api/logs/stream")
    assert response.mimetype == "text/event-stream"

    chunks = iter(response.response)
    init = next(chunks)
    count = next(chunks)
    assert init.startswith(b"event: init\n")
    assert count.startswith(b"event: clientCount\n")
    assert hub.subscriber_count == 1

    assert next(chunks) == b": keepalive\n\n"

    hub.submit(ClientEvent(kind="scroll", session_id="s1", details={"percent": "50%"}))
    new_log = next(chunks)
    assert new_log.startswith(b"event: newLog\n")
    assert b'"percent": "50%"' in new_log

    response.close()
    assert hub.subscriber_count == 0
