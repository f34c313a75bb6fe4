from __future__ import annotations

from fastapi.testclient import TestClient

from app.main import app


client = TestClient(app)


def test_preserves_incoming_request_id_header():
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing():
    resp = client.get("/health")

    assert resp.status_code == 200
    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_error_body_carries_request_id():
    resp = client.get("/v1/campaigns", headers={"X-Request-ID": "req-err-1", "X-API-Key": "nope"})

    assert resp.status_code == 403
    assert resp.headers.get("X-Request-ID") == "req-err-1"


def test_health_reports_rate_limit_configuration():
    body = client.get("/health").json()

    assert body["status"] == "ok"
    assert body["mail_provider"] == "console"
    assert body["email_rate_limit"] == {"quota": 2, "window_seconds": 60.0}
