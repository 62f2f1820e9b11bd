"""
tests/test_api_auth.py -- Integration tests for the /api/v1/auth routes and health.

Covers:
  - login returns a bearer token; wrong password and unknown user are
    indistinguishable (same status, same body)
  - /auth/me requires a live session (401 otherwise)
  - /auth/users is admin-only (401 without a token, 403 for USER) and
    returns 409 for a duplicate username
  - logout revokes the durable token and is idempotent
  - health reports the database component
"""

from __future__ import annotations

import base64

from fastapi.testclient import TestClient
from sqlalchemy import select

from api.main import app
from db.schema import tokens

# Captured at collection time, before any fixture has run.
_APP_LIFESPAN = app.router.lifespan_context


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestLogin:
    def test_login_success(self, api_client) -> None:
        client, _, _, _ = api_client
        resp = client.post("/api/v1/auth/login", json={"username": "testadmin", "password": "adminpass123"})
        assert resp.status_code == 200
        assert resp.headers["Cache-Control"] == "no-store"
        data = resp.json()
        assert data["username"] == "testadmin"
        assert data["role"] == "ADMIN"
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 30 * 24 * 60 * 60
        assert len(base64.b64decode(data["token"])) == 64

    def test_wrong_password_and_unknown_user_look_the_same(self, api_client) -> None:
        client, _, _, _ = api_client
        wrong = client.post("/api/v1/auth/login", json={"username": "testadmin", "password": "nope"})
        ghost = client.post("/api/v1/auth/login", json={"username": "ghost", "password": "nope"})

        assert wrong.status_code == ghost.status_code == 401
        assert wrong.json() == ghost.json()
        assert wrong.json()["error"]["code"] == "bad_credentials"

    def test_empty_username_is_a_validation_error(self, api_client) -> None:
        client, _, _, _ = api_client
        resp = client.post("/api/v1/auth/login", json={"username": "", "password": "x"})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"


class TestMe:
    def test_me_with_valid_token(self, api_client) -> None:
        client, _, admin_token, _ = api_client
        resp = client.get("/api/v1/auth/me", headers=_bearer(admin_token))
        assert resp.status_code == 200
        assert resp.json() == {"username": "testadmin", "role": "ADMIN"}

    def test_me_without_token_is_401(self, api_client) -> None:
        client, _, _, _ = api_client
        resp = client.get("/api/v1/auth/me")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"
        assert resp.headers["WWW-Authenticate"] == "Bearer"

    def test_me_with_unknown_token_is_401(self, api_client) -> None:
        client, _, _, _ = api_client
        resp = client.get("/api/v1/auth/me", headers=_bearer("bm9wZQ=="))
        assert resp.status_code == 401


class TestCreateUser:
    def test_admin_creates_user_who_can_log_in(self, api_client) -> None:
        client, _, admin_token, _ = api_client
        resp = client.post(
            "/api/v1/auth/users",
            json={"username": "carol", "password": "carolpass", "role": "USER"},
            headers=_bearer(admin_token),
        )
        assert resp.status_code == 201
        assert resp.json() == {"username": "carol", "role": "USER"}

        login = client.post("/api/v1/auth/login", json={"username": "carol", "password": "carolpass"})
        assert login.status_code == 200

    def test_duplicate_username_is_409(self, api_client) -> None:
        client, _, admin_token, _ = api_client
        resp = client.post(
            "/api/v1/auth/users",
            json={"username": "testuser", "password": "other"},
            headers=_bearer(admin_token),
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "username_taken"

        # Original credential untouched
        login = client.post("/api/v1/auth/login", json={"username": "testuser", "password": "userpass123"})
        assert login.status_code == 200

    def test_user_role_is_forbidden(self, api_client) -> None:
        client, _, _, user_token = api_client
        resp = client.post(
            "/api/v1/auth/users",
            json={"username": "mallory", "password": "x"},
            headers=_bearer(user_token),
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"

    def test_no_token_is_unauthorized(self, api_client) -> None:
        client, _, _, _ = api_client
        resp = client.post("/api/v1/auth/users", json={"username": "mallory", "password": "x"})
        assert resp.status_code == 401


class TestLogout:
    def test_logout_deletes_durable_token(self, api_client) -> None:
        client, _, _, user_token = api_client
        resp = client.post("/api/v1/auth/logout", headers=_bearer(user_token))
        assert resp.status_code == 200

        with client.app.state.pool.connection() as conn:
            row = conn.execute(select(tokens).where(tokens.c.token == user_token)).first()
        assert row is None

    def test_logout_without_token_is_ok(self, api_client) -> None:
        client, _, _, _ = api_client
        assert client.post("/api/v1/auth/logout").status_code == 200

    def test_logout_twice_is_ok(self, api_client) -> None:
        client, _, _, user_token = api_client
        assert client.post("/api/v1/auth/logout", headers=_bearer(user_token)).status_code == 200
        assert client.post("/api/v1/auth/logout", headers=_bearer(user_token)).status_code == 200


def test_health_reports_database(api_client) -> None:
    client: TestClient = api_client[0]
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["components"] == {"app": "ok", "database": "ok"}


def test_client_fixture_restores_the_app_lifespan() -> None:
    # Runs after the route tests above; each of them swapped in a test lifespan.
    assert app.router.lifespan_context is _APP_LIFESPAN
