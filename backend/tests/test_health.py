"""
Tests for backend/main.py: app wiring, lifespan and request error bodies.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from backend.main import app


def test_health_endpoint():
    with TestClient(app) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_lifespan_logs_startup(caplog):
    with caplog.at_level("INFO", logger="backend.main"), TestClient(app):
        pass

    assert "main: startup" in caplog.text
    assert "mock_llm=True" in caplog.text
    assert "main: shutdown" in caplog.text


def test_malformed_json_is_invalid_request():
    client = TestClient(app)
    response = client.post(
        "/api/generate-stream",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "InvalidRequest"


def test_docs_disabled():
    client = TestClient(app)

    assert client.get("/docs").status_code == 404
