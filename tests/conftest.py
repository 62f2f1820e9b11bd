"""
tests/conftest.py -- Shared test fixtures for SessionVault.

This module provides:
  - FakeClock / clock: a controllable time source so TTL and expiry tests do
    not sleep
  - settings: Settings with a small PBKDF2 iteration count (fast tests)
  - pool: a single-connection in-memory SQLite pool with the schema applied
  - service: AuthenticationService wired to the above
  - api_client: TestClient with an ADMIN and a USER session for route tests

Design: plain "sqlite:///:memory:" is per-connection, so every in-memory pool
here has size 1. Tests that need several real connections use a file DB under
tmp_path instead.

LOGIN_RATE_LIMIT is raised before any app import so the route tests never
trip the brute-force limiter.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Role
from auth.service import AuthenticationService
from core.config import Settings
from db.pool import ConnectionPool, create_pool
from db.schema import install_schema

_T0 = 1_700_000_000.0


class FakeClock:
    """Callable time source in seconds. advance() moves it forward."""

    def __init__(self, start: float = _T0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_settings(**overrides) -> Settings:
    values = {"pbkdf2_iterations": 1_000}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def pool() -> Generator[ConnectionPool, None, None]:
    p = create_pool("sqlite:///:memory:", size=1)
    install_schema(p)
    yield p
    p.close()


@pytest.fixture
def service(pool: ConnectionPool, settings: Settings, clock: FakeClock) -> AuthenticationService:
    return AuthenticationService(pool, settings, clock=clock)


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


def _patch_lifespan(pool: ConnectionPool, service: AuthenticationService):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-built test pool and service into app.state so TestClient
    routes see an isolated in-memory store rather than the default database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.pool = pool
        app.state.auth_service = service
        yield

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[tuple[TestClient, AuthenticationService, str, str], None, None]:
    """Yield (client, service, admin_token, user_token) for route tests.

    Uses the real wall clock: the HTTP layer has no clock injection and the
    tests only need sessions that are valid now.
    """
    p = create_pool("sqlite:///:memory:", size=1)
    install_schema(p)
    svc = AuthenticationService(p, make_settings())
    svc.create_user(Role.ADMIN, "testadmin", "adminpass123")
    svc.create_user(Role.USER, "testuser", "userpass123")
    admin_token = svc.login("testadmin", "adminpass123").token
    user_token = svc.login("testuser", "userpass123").token

    original_lifespan = app.router.lifespan_context
    app.router.lifespan_context = _patch_lifespan(p, svc)

    try:
        with TestClient(app, base_url="http://localhost", raise_server_exceptions=True) as client:
            yield client, svc, admin_token, user_token
    finally:
        app.router.lifespan_context = original_lifespan
        p.close()
