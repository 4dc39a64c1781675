from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from sams_auth.clients.memory_store import InMemorySessionStore
from sams_auth.config import Settings
from sams_auth.main import create_app
from sams_auth.services.password_hasher import PasswordManager
from sams_auth.services.session_jwt import JWTConfig, JWTSessionManager
from sams_auth.services.session_manager import AuthConfig, SessionManager
from sams_auth.services.session_tokens import SessionTokenManager

TEST_JWT_KEY = b"0123456789abcdef0123456789abcdef"


class Clock:
    """Settable wall clock for session-manager tests."""

    def __init__(self) -> None:
        self.current = datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current += delta


@pytest.fixture
def settings() -> Settings:
    return Settings(
        ARGON2_MEMORY_COST=1024,
        ARGON2_TIME_COST=1,
        ARGON2_PARALLELISM=1,
        JWT_SECRET="MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY=",
        DATABASE_URL="",
        SESSION_CLEANUP_PROBABILITY=0.0,
        STORE_BACKOFF_FACTOR=0.0,
    )


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def jwt_manager() -> JWTSessionManager:
    return JWTSessionManager(JWTConfig(secret=TEST_JWT_KEY))


@pytest.fixture
def password_manager(settings) -> PasswordManager:
    return PasswordManager(settings)


@pytest.fixture
def session_manager(store, password_manager, jwt_manager, clock) -> SessionManager:
    return SessionManager(
        store=store,
        password_manager=password_manager,
        token_manager=SessionTokenManager(),
        jwt_manager=jwt_manager,
        config=AuthConfig(cleanup_probability=0.0),
        now=clock,
    )


@pytest.fixture
def app(settings, store):
    return create_app(settings=settings, store=store)


@pytest.fixture
def client(app) -> TestClient:
    with TestClient(app) as c:
        yield c
