from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sams_auth.core.exceptions import UserExistsError
from sams_auth.schemas.domain import Session, User, UserWithPassword
from sams_auth.schemas.enums import UserRole


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemorySessionStore:
    """Process-local store for development and tests."""

    def __init__(self) -> None:
        self._users: dict[str, UserWithPassword] = {}
        self._sessions: dict[str, Session] = {}

    async def connect(self) -> None:
        return None

    async def close(self) -> None:
        return None

    async def create_schema(self) -> None:
        return None

    # Users

    async def create_user(
        self,
        *,
        email: str,
        name: str,
        password_hash: str,
        role: UserRole | None = None,
    ) -> User:
        email = email.lower()
        if any(u.email == email for u in self._users.values()):
            raise UserExistsError(message="User with this email already exists")
        now = _utcnow()
        record = UserWithPassword(
            id=str(uuid.uuid4()),
            email=email,
            name=name,
            role=role or UserRole.RESEARCHER,
            email_verified=False,
            created_at=now,
            updated_at=now,
            password_hash=password_hash,
        )
        self._users[record.id] = record
        return record.without_password()

    async def get_user_by_email(self, email: str) -> User | None:
        record = self._find_by_email(email)
        return record.without_password() if record else None

    async def get_user_by_id(self, user_id: str) -> User | None:
        record = self._users.get(user_id)
        return record.without_password() if record else None

    async def get_user_by_email_with_password(self, email: str) -> UserWithPassword | None:
        record = self._find_by_email(email)
        return record.model_copy() if record else None

    async def update_user_password_hash(self, user_id: str, password_hash: str) -> None:
        record = self._users.get(user_id)
        if record is not None:
            record.password_hash = password_hash
            record.updated_at = _utcnow()

    async def delete_user(self, user_id: str) -> None:
        self._users.pop(user_id, None)
        await self.delete_user_sessions(user_id)

    def _find_by_email(self, email: str) -> UserWithPassword | None:
        email = email.lower()
        for record in self._users.values():
            if record.email == email:
                return record
        return None

    # Sessions

    async def create_session(
        self,
        session_id: str,
        user_id: str,
        last_verified_at: datetime,
        secret_hash: bytes,
    ) -> Session:
        self._sessions[session_id] = Session(
            id=session_id,
            user_id=user_id,
            last_verified_at=last_verified_at,
            fresh=False,
            secret_hash=secret_hash,
        )
        return Session(
            id=session_id,
            user_id=user_id,
            last_verified_at=last_verified_at,
            fresh=True,
            secret_hash=secret_hash,
        )

    async def get_session_by_id(self, session_id: str) -> Session | None:
        stored = self._sessions.get(session_id)
        # Rows read back are never fresh
        return stored.model_copy(update={"fresh": False}) if stored else None

    async def update_session_last_verified(
        self, session_id: str, last_verified_at: datetime
    ) -> None:
        stored = self._sessions.get(session_id)
        if stored is not None:
            stored.last_verified_at = last_verified_at

    async def delete_session(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def delete_user_sessions(self, user_id: str) -> None:
        for session_id in [s.id for s in self._sessions.values() if s.user_id == user_id]:
            self._sessions.pop(session_id, None)

    async def cleanup_inactive_sessions(self, cutoff: datetime) -> int:
        expired = [s.id for s in self._sessions.values() if s.last_verified_at < cutoff]
        for session_id in expired:
            self._sessions.pop(session_id, None)
        return len(expired)
