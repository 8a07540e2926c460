from __future__ import annotations

import json
import uuid

import pytest
from fastapi.testclient import TestClient

from edurpg.core.config import RateLimitRule
from edurpg.core.error_reporter import ErrorReporter
from edurpg.core.limits.rate_limit import RateLimitService, RateLimitStore
from edurpg.core.log_service import Logger
from edurpg.core.system_log import SystemLogStore
from edurpg.web.api import create_app

from .helpers.log_assertions import assert_no_secret_leak, read_jsonl


def _logs(store: SystemLogStore):
    return [r for r in read_jsonl(store.path) if r.get("kind") == "log"]


def test_health_sets_request_id(app_logger, system_store):
    c = TestClient(create_app(logger=app_logger, store=system_store))
    r = c.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}
    rid = r.headers["X-Request-Id"]
    assert uuid.UUID(rid).version == 4

    rows = _logs(system_store)
    assert [row["message"] for row in rows] == ["API Request: GET /health", "API Response: GET /health - 200"]
    assert all(row["request_id"] == rid for row in rows)
    assert "duration_ms" in rows[1]["metadata"]


def test_valid_client_request_id_echoed(app_logger, system_store):
    rid = str(uuid.uuid4())
    c = TestClient(create_app(logger=app_logger, store=system_store))
    assert c.get("/health", headers={"X-Request-Id": rid}).headers["X-Request-Id"] == rid


def test_invalid_client_request_id_replaced(app_logger, system_store):
    c = TestClient(create_app(logger=app_logger, store=system_store))
    out = c.get("/health", headers={"X-Request-Id": "not-a-uuid"}).headers["X-Request-Id"]
    assert out != "not-a-uuid"
    assert uuid.UUID(out).version == 4


def test_query_string_never_logged(app_logger, system_store):
    c = TestClient(create_app(logger=app_logger, store=system_store))
    c.get("/health?email=kid@school.cz&token=abc")
    blob = json.dumps(read_jsonl(system_store.path))
    assert "kid@school.cz" not in blob
    assert "token=abc" not in blob


def test_event_endpoint_redacts_payload(app_logger, system_store):
    c = TestClient(create_app(logger=app_logger, store=system_store))
    r = c.post(
        "/v1/events",
        json={"type": "auth_fail", "actor_id": "u-1", "payload": {"email": "kid@school.cz", "note": "pwd=abc123", "attempt": 2}},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["type"] == "auth_fail"
    assert body["request_id"] == r.headers["X-Request-Id"]

    events = [row for row in read_jsonl(system_store.path) if row["kind"] == "event"]
    assert len(events) == 1
    assert events[0]["payload"] == {"email": "[redacted:field]", "note": "[redacted:password]", "attempt": 2}
    assert events[0]["request_id"] == body["request_id"]
    assert_no_secret_leak(read_jsonl(system_store.path), "kid@school.cz", "abc123")


def test_unknown_event_type_is_422_and_logged_as_warning(app_logger, system_store):
    c = TestClient(create_app(logger=app_logger, store=system_store))
    r = c.post("/v1/events", json={"type": "nope"})
    assert r.status_code == 422
    last = _logs(system_store)[-1]
    assert last["level"] == "WARN"
    assert last["metadata"]["status_code"] == 422


def test_store_failure_is_503(tmp_path, app_logger):
    blocked = tmp_path / "events.jsonl"
    blocked.mkdir()
    c = TestClient(create_app(logger=app_logger, store=SystemLogStore(path=str(blocked))))
    assert c.post("/v1/events", json={"type": "sync_ok"}).status_code == 503


def test_rate_limit_returns_429(app_logger, system_store):
    limiter = RateLimitService(RateLimitRule(window_seconds=60, max_attempts=2), RateLimitStore(), time_fn=lambda: 1000.0)
    c = TestClient(create_app(logger=app_logger, store=system_store, rate_limiter=limiter))
    assert c.get("/health").status_code == 200
    assert c.get("/health").status_code == 200
    r = c.get("/health")
    assert r.status_code == 429
    assert r.json() == {
        "error": "Rate limit exceeded",
        "message": "Too many requests. Please slow down.",
        "retry_after": 20,
        "blocked": False,
    }
    assert r.headers["Retry-After"] == "20"
    assert r.headers["X-RateLimit-Limit"] == "2"
    assert r.headers["X-RateLimit-Remaining"] == "0"
    assert r.headers["X-RateLimit-Reset"] == "1020"
    assert "X-Request-Id" in r.headers

    sec = [row for row in _logs(system_store) if row["message"] == "Security Event: rate_limited"]
    assert len(sec) == 1
    assert sec[0]["level"] == "WARN"
    assert sec[0]["metadata"]["blocked"] is False


def test_unhandled_exception_logged_reported_and_reraised(tmp_path, app_logger, system_store):
    reporter = ErrorReporter(path=str(tmp_path / "errors.jsonl"))
    app = create_app(logger=app_logger, store=system_store, error_reporter=reporter)

    @app.get("/boom")
    def boom():
        raise RuntimeError("kaboom for kid@school.cz")

    c = TestClient(app)
    with pytest.raises(RuntimeError):
        c.get("/boom")

    rows = _logs(system_store)
    exc_rows = [row for row in rows if row["message"] == "API Exception: GET /boom"]
    assert len(exc_rows) == 1
    assert exc_rows[0]["level"] == "ERROR"
    assert exc_rows[0]["metadata"] == {"error_type": "RuntimeError"}

    err = reporter.tail(1)[0]
    assert err["error_code"] == "unknown_error"
    assert err["subsystem"] == "web"
    assert err["request_id"] == exc_rows[0]["request_id"]
    assert err["safe_context"] == {"error": "kaboom for [redacted:email]", "method": "GET", "path": "/boom"}
    assert "kid@school.cz" not in json.dumps(rows)
