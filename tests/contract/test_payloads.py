from __future__ import annotations

from fastapi.testclient import TestClient

from sams_auth.clients.memory_store import InMemorySessionStore
from sams_auth.config import Settings
from sams_auth.main import create_app


class TestPayloadValidation:
    def setup_method(self):
        app = create_app(settings=Settings(DATABASE_URL=""), store=InMemorySessionStore())
        self.ctx = TestClient(app)
        self.client = self.ctx.__enter__()

    def teardown_method(self):
        self.ctx.__exit__(None, None, None)

    def test_signup_missing_fields(self):
        resp = self.client.post("/api/v1/auth/signup", json={})
        assert resp.status_code == 422

    def test_signup_missing_name(self):
        resp = self.client.post(
            "/api/v1/auth/signup", json={"email": "a@example.com", "password": "pw"}
        )
        assert resp.status_code == 422

    def test_signup_empty_password(self):
        resp = self.client.post(
            "/api/v1/auth/signup",
            json={"email": "a@example.com", "password": "", "name": "A"},
        )
        assert resp.status_code == 422

    def test_login_missing_password(self):
        resp = self.client.post("/api/v1/auth/login", json={"email": "a@example.com"})
        assert resp.status_code == 422

    def test_error_response_shape(self):
        resp = self.client.get("/api/v1/auth/me")
        assert resp.status_code == 401
        assert set(resp.json()) == {"error_code", "message", "detail"}

    def test_health_response_shape(self):
        resp = self.client.get("/api/v1/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["service"] == "sams-auth"

    def test_readiness_response_shape(self):
        resp = self.client.get("/api/v1/health/ready")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ready", "service": "sams-auth"}
