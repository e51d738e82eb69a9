from fastapi.testclient import TestClient

from app.core.config import settings
from app.main import app


def test_health_reports_database_state():
    response = TestClient(app).get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] in ("healthy", "unhealthy")
    assert "database" in body
    assert "X-Process-Time" in response.headers


def test_unknown_route_uses_failure_envelope():
    response = TestClient(app).get("/api/v1/does-not-exist")

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_debug_flag_comes_from_settings():
    assert app.debug is settings.DEBUG
