from __future__ import annotations

import asyncio
import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sams_auth.clients.store import SessionStore
from sams_auth.config import Settings
from sams_auth.core.exceptions import HashingError, UserExistsError
from sams_auth.core.logging import get_logger
from sams_auth.schemas.domain import (
    AuthenticatedSession,
    CreatedSession,
    CreateUserData,
    LoginCredentials,
    SessionValidationResult,
    User,
)
from sams_auth.services.password_hasher import PasswordManager
from sams_auth.services.session_jwt import JWTSessionManager
from sams_auth.services.session_tokens import SessionTokenManager

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuthConfig:
    inactivity_timeout: timedelta = timedelta(days=10)
    activity_check_interval: timedelta = timedelta(hours=1)
    fresh_window: timedelta = timedelta(hours=24)
    cleanup_probability: float = 0.01

    @classmethod
    def from_settings(cls, settings: Settings) -> AuthConfig:
        return cls(
            inactivity_timeout=timedelta(seconds=settings.SESSION_INACTIVITY_TIMEOUT_SECONDS),
            activity_check_interval=timedelta(
                seconds=settings.SESSION_ACTIVITY_CHECK_INTERVAL_SECONDS
            ),
            fresh_window=timedelta(seconds=settings.SESSION_FRESH_WINDOW_SECONDS),
            cleanup_probability=settings.SESSION_CLEANUP_PROBABILITY,
        )


class SessionManager:
    """Orchestrator: credentials -> user -> session token + fast-path JWT.

    Every invalid-session outcome is reported as an empty
    ``SessionValidationResult``; only store failures raise.
    """

    def __init__(
        self,
        store: SessionStore,
        password_manager: PasswordManager,
        token_manager: SessionTokenManager,
        jwt_manager: JWTSessionManager,
        config: AuthConfig | None = None,
        *,
        now: Callable[[], datetime] = _utcnow,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self._store = store
        self._passwords = password_manager
        self._tokens = token_manager
        self._jwt = jwt_manager
        self._config = config or AuthConfig()
        self._now = now
        self._rng = rng
        self._background_tasks: set[asyncio.Task[None]] = set()

    @property
    def config(self) -> AuthConfig:
        return self._config

    @property
    def jwt_expiration_seconds(self) -> int:
        return self._jwt.expiration_seconds

    # Users

    async def create_user(self, user_data: CreateUserData) -> User:
        email = user_data.email.strip().lower()
        if await self._store.get_user_by_email(email):
            raise UserExistsError(message="User with this email already exists")

        password_hash = await self._passwords.hash_password(user_data.password)
        user = await self._store.create_user(
            email=email,
            name=user_data.name,
            password_hash=password_hash,
            role=user_data.role,
        )
        logger.info("user_created", user_id=user.id, role=user.role.value)
        return user

    async def authenticate_user(self, credentials: LoginCredentials) -> User | None:
        """Return the user, or None for an unknown email or a wrong password alike."""
        record = await self._store.get_user_by_email_with_password(
            credentials.email.strip().lower()
        )
        if record is None:
            return None

        if not await self._passwords.verify_password(credentials.password, record.password_hash):
            return None

        if self._passwords.needs_rehash(record.password_hash):
            await self._rehash_password(record.id, credentials.password)

        return record.without_password()

    async def _rehash_password(self, user_id: str, password: str) -> None:
        try:
            new_hash = await self._passwords.hash_password(password)
        except HashingError:
            logger.warning("password_rehash_failed", user_id=user_id)
            return
        await self._store.update_user_password_hash(user_id, new_hash)
        logger.info("password_rehashed", user_id=user_id)

    async def get_user_by_id(self, user_id: str) -> User | None:
        return await self._store.get_user_by_id(user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        return await self._store.get_user_by_email(email.strip().lower())

    # Sessions

    async def create_session(self, user_id: str) -> CreatedSession:
        token_data = self._tokens.generate_session_token()
        session = await self._store.create_session(
            token_data.id,
            user_id,
            self._now(),
            token_data.secret_hash,
        )
        jwt = self._jwt.create_session_jwt(session)
        logger.info("session_created", session_id=session.id, user_id=user_id)
        return CreatedSession(session=session, token=token_data.token, jwt=jwt)

    async def validate_session_jwt(self, jwt: str | None) -> SessionValidationResult:
        """Fast path: trust the signed summary, but re-check that the user exists."""
        session = self._jwt.validate_session_jwt(jwt)
        if session is None:
            return SessionValidationResult.empty()

        user = await self._store.get_user_by_id(session.user_id)
        if user is None:
            logger.info("session_jwt_user_missing", session_id=session.id)
            return SessionValidationResult.empty()

        return SessionValidationResult(session=session, user=user)

    async def validate_session(self, token: str | None) -> SessionValidationResult:
        """Slow path: look the session up and verify its secret in constant time."""
        parts = self._tokens.parse_session_token(token)
        if parts is None:
            return SessionValidationResult.empty()

        session = await self._store.get_session_by_id(parts.session_id)
        if session is None:
            return SessionValidationResult.empty()

        if not self._tokens.verify_session_secret(parts.session_secret, session.secret_hash):
            logger.warning("session_secret_mismatch", session_id=session.id)
            return SessionValidationResult.empty()

        now = self._now()
        elapsed = now - session.last_verified_at

        if elapsed >= self._config.inactivity_timeout:
            await self.invalidate_session(session.id)
            logger.info(
                "session_expired",
                session_id=session.id,
                idle_seconds=int(elapsed.total_seconds()),
            )
            return SessionValidationResult.empty()

        user = await self._store.get_user_by_id(session.user_id)
        if user is None:
            await self.invalidate_session(session.id)
            logger.info("orphaned_session_removed", session_id=session.id)
            return SessionValidationResult.empty()

        if elapsed >= self._config.activity_check_interval:
            await self._store.update_session_last_verified(session.id, now)
            session.last_verified_at = now

        session.fresh = elapsed < self._config.fresh_window
        self._maybe_schedule_cleanup()

        return SessionValidationResult(session=session, user=user)

    async def validate_request_tokens(
        self, session_token: str | None, jwt: str | None
    ) -> SessionValidationResult:
        """Try the JWT first, then fall back to the session token."""
        if jwt:
            result = await self.validate_session_jwt(jwt)
            if result.session is not None:
                return result

        if session_token:
            return await self.validate_session(session_token)

        return SessionValidationResult.empty()

    async def invalidate_session(self, session_id: str) -> None:
        await self._store.delete_session(session_id)

    async def invalidate_user_sessions(self, user_id: str) -> None:
        await self._store.delete_user_sessions(user_id)
        logger.info("user_sessions_invalidated", user_id=user_id)

    async def cleanup_inactive_sessions(self) -> int:
        cutoff = self._now() - self._config.inactivity_timeout
        return await self._store.cleanup_inactive_sessions(cutoff)

    # Background cleanup

    def _maybe_schedule_cleanup(self) -> None:
        if self._rng() >= self._config.cleanup_probability:
            return
        task = asyncio.create_task(self._background_cleanup())
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _background_cleanup(self) -> None:
        try:
            cleaned = await self.cleanup_inactive_sessions()
        except Exception:
            logger.error("background_cleanup_failed", exc_info=True)
            return
        if cleaned > 0:
            logger.info("background_cleanup_completed", removed=cleaned)

    async def drain_background_tasks(self) -> None:
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    # Composite flows

    async def register_and_login(self, user_data: CreateUserData) -> AuthenticatedSession:
        user = await self.create_user(user_data)
        created = await self.create_session(user.id)
        return AuthenticatedSession(user=user, session_token=created.token, jwt=created.jwt)

    async def login_user(self, credentials: LoginCredentials) -> AuthenticatedSession | None:
        user = await self.authenticate_user(credentials)
        if user is None:
            logger.info("login_rejected")
            return None
        created = await self.create_session(user.id)
        return AuthenticatedSession(user=user, session_token=created.token, jwt=created.jwt)
