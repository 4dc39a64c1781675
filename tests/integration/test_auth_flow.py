from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from sams_auth.core.exceptions import StoreUnavailableError
from sams_auth.schemas.enums import UserRole

SESSION_COOKIE = "auth_session"
JWT_COOKIE = "auth_jwt"


def _signup(client, email="alice@example.com", password="CorrectHorse1!", name="Alice"):
    return client.post(
        "/api/v1/auth/signup",
        json={"email": email, "password": password, "name": name},
    )


@pytest.mark.integration
class TestSignupLoginLogout:
    def test_signup_sets_cookies_and_authenticates(self, client):
        resp = _signup(client, email="Alice@Example.com")
        assert resp.status_code == 201
        data = resp.json()
        assert data["success"] is True
        assert data["user"]["email"] == "alice@example.com"
        assert data["user"]["role"] == "researcher"
        assert "password_hash" not in data["user"]

        assert client.cookies.get(SESSION_COOKIE)
        assert client.cookies.get(JWT_COOKIE)
        set_cookie = ",".join(resp.headers.get_list("set-cookie")).lower()
        assert "httponly" in set_cookie
        assert "samesite=lax" in set_cookie

        me = client.get("/api/v1/auth/me")
        assert me.status_code == 200
        assert me.json()["user"]["id"] == data["user"]["id"]

    def test_duplicate_signup(self, client):
        assert _signup(client).status_code == 201
        resp = _signup(client, email="ALICE@example.com")
        assert resp.status_code == 409
        assert resp.json()["error_code"] == "USER_EXISTS"

    def test_login(self, client):
        _signup(client)
        client.cookies.clear()

        resp = client.post(
            "/api/v1/auth/login",
            json={"email": "alice@example.com", "password": "CorrectHorse1!"},
        )
        assert resp.status_code == 200
        assert resp.json()["message"] == "Login successful"
        assert client.get("/api/v1/auth/me").status_code == 200

    @pytest.mark.parametrize(
        "email, password",
        [
            ("alice@example.com", "wrong-password"),
            ("nobody@example.com", "CorrectHorse1!"),
        ],
    )
    def test_bad_credentials_are_indistinguishable(self, client, email, password):
        _signup(client)
        client.cookies.clear()

        resp = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 401
        body = resp.json()
        assert body["error_code"] == "INVALID_CREDENTIALS"
        assert body["message"] == "Invalid email or password"

    def test_logout_clears_session(self, client):
        _signup(client)
        token = client.cookies.get(SESSION_COOKIE)

        resp = client.post("/api/v1/auth/logout")
        assert resp.status_code == 200
        assert client.get("/api/v1/auth/me").status_code == 401

        client.cookies.set(SESSION_COOKIE, token)
        assert client.get("/api/v1/auth/me").status_code == 401

    def test_logout_without_session(self, client):
        resp = client.post("/api/v1/auth/logout")
        assert resp.status_code == 200
        assert resp.json()["success"] is True

    def test_me_requires_auth(self, client):
        resp = client.get("/api/v1/auth/me")
        assert resp.status_code == 401
        assert resp.json()["error_code"] == "AUTH_REQUIRED"


@pytest.mark.integration
class TestValidationPaths:
    def test_falls_back_to_session_token_without_jwt(self, client):
        _signup(client)
        client.cookies.delete(JWT_COOKIE)
        assert client.get("/api/v1/auth/me").status_code == 200

    def test_falls_back_when_jwt_is_garbage(self, client):
        _signup(client)
        token = client.cookies.get(SESSION_COOKIE)
        client.cookies.clear()
        client.cookies.set(SESSION_COOKIE, token)
        client.cookies.set(JWT_COOKIE, "not.a.jwt")
        assert client.get("/api/v1/auth/me").status_code == 200

    def test_tampered_session_secret_rejected(self, client):
        _signup(client)
        session_id, _ = client.cookies.get(SESSION_COOKIE).split(".")
        client.cookies.clear()
        client.cookies.set(SESSION_COOKIE, f"{session_id}.{'a' * 32}")
        assert client.get("/api/v1/auth/me").status_code == 401

    def test_store_failure_is_503(self, client, store):
        _signup(client)
        client.cookies.delete(JWT_COOKIE)
        store.get_session_by_id = AsyncMock(
            side_effect=StoreUnavailableError(message="Store unavailable", detail="boom")
        )

        resp = client.get("/api/v1/auth/me")
        assert resp.status_code == 503
        body = resp.json()
        assert body["error_code"] == "STORE_UNAVAILABLE"
        assert body["detail"] is None


@pytest.mark.integration
class TestSessionRevocation:
    def test_logout_all_revokes_every_session(self, client):
        _signup(client)
        first_token = client.cookies.get(SESSION_COOKIE)
        client.post(
            "/api/v1/auth/login",
            json={"email": "alice@example.com", "password": "CorrectHorse1!"},
        )

        resp = client.post("/api/v1/auth/logout-all")
        assert resp.status_code == 200

        client.cookies.clear()
        client.cookies.set(SESSION_COOKIE, first_token)
        assert client.get("/api/v1/auth/me").status_code == 401

    def test_admin_can_revoke_user_sessions(self, client, store):
        victim = _signup(client, email="bob@example.com", name="Bob").json()["user"]
        victim_token = client.cookies.get(SESSION_COOKIE)
        client.cookies.clear()

        admin = _signup(client, email="admin@example.com", name="Admin").json()["user"]
        store._users[admin["id"]].role = UserRole.ADMIN

        resp = client.post(f"/api/v1/auth/users/{victim['id']}/sessions/revoke")
        assert resp.status_code == 200

        client.cookies.clear()
        client.cookies.set(SESSION_COOKIE, victim_token)
        assert client.get("/api/v1/auth/me").status_code == 401

    def test_revoke_requires_admin(self, client):
        victim = _signup(client, email="bob@example.com", name="Bob").json()["user"]
        resp = client.post(f"/api/v1/auth/users/{victim['id']}/sessions/revoke")
        assert resp.status_code == 403
        assert resp.json()["error_code"] == "FORBIDDEN"

    def test_revoke_unknown_user(self, client, store):
        admin = _signup(client, email="admin@example.com", name="Admin").json()["user"]
        store._users[admin["id"]].role = UserRole.ADMIN

        resp = client.post("/api/v1/auth/users/missing/sessions/revoke")
        assert resp.status_code == 404
        assert resp.json()["error_code"] == "NOT_FOUND"


@pytest.mark.integration
class TestReadiness:
    def test_ready_when_store_reachable(self, client):
        assert client.get("/api/v1/health/ready").json()["status"] == "ready"

    def test_unreachable_store_is_503(self, client, store):
        store.connect = AsyncMock(side_effect=StoreUnavailableError(message="Store unavailable"))
        resp = client.get("/api/v1/health/ready")
        assert resp.status_code == 503
        assert resp.json()["error_code"] == "STORE_UNAVAILABLE"
