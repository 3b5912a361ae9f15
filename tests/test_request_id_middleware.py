from __future__ import annotations

import logging

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
    assert isinstance(generated, str)
    assert len(generated) > 0

    duration = resp.headers.get("X-Request-Duration-ms")
    assert duration is not None
    assert float(duration) >= 0


def test_error_responses_carry_request_id(make_app):
    with TestClient(make_app(max_requests=1)) as test_client:
        test_client.get("/api/upstream/movie/popular")
        resp = test_client.get(
            "/api/upstream/movie/popular",
            headers={"X-Request-ID": "req-limited"},
        )

    assert resp.status_code == 429
    assert resp.headers["X-Request-ID"] == "req-limited"


def test_access_log_omits_query_string(make_app, caplog):
    with caplog.at_level(logging.INFO, logger="app.access"):
        with TestClient(make_app()) as test_client:
            test_client.get("/api/upstream/movie/popular?api_key=leak-me&page=3")

    records = [r for r in caplog.records if r.getMessage() == "http.request"]
    assert records
    assert records[-1].path == "/api/upstream/movie/popular"
    assert records[-1].status == 200
    assert "leak-me" not in caplog.text
