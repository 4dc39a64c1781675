from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from sams_auth.config import Settings
from sams_auth.core.logging import get_logger
from sams_auth.schemas.domain import Session, User, UserWithPassword
from sams_auth.schemas.enums import UserRole

logger = get_logger(__name__)


@runtime_checkable
class SessionStore(Protocol):
    """Persistence contract the session manager depends on.

    Implementations raise ``StoreError`` subclasses for infrastructure
    failures and ``UserExistsError`` when an email is already taken.
    Deletes are idempotent.
    """

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def create_schema(self) -> None: ...

    async def create_user(
        self,
        *,
        email: str,
        name: str,
        password_hash: str,
        role: UserRole | None = None,
    ) -> User: ...

    async def get_user_by_email(self, email: str) -> User | None: ...

    async def get_user_by_id(self, user_id: str) -> User | None: ...

    async def get_user_by_email_with_password(self, email: str) -> UserWithPassword | None: ...

    async def update_user_password_hash(self, user_id: str, password_hash: str) -> None: ...

    async def delete_user(self, user_id: str) -> None: ...

    async def create_session(
        self,
        session_id: str,
        user_id: str,
        last_verified_at: datetime,
        secret_hash: bytes,
    ) -> Session: ...

    async def get_session_by_id(self, session_id: str) -> Session | None: ...

    async def update_session_last_verified(
        self, session_id: str, last_verified_at: datetime
    ) -> None: ...

    async def delete_session(self, session_id: str) -> None: ...

    async def delete_user_sessions(self, user_id: str) -> None: ...

    async def cleanup_inactive_sessions(self, cutoff: datetime) -> int: ...


def create_store(settings: Settings) -> SessionStore:
    if not settings.DATABASE_URL:
        from sams_auth.clients.memory_store import InMemorySessionStore

        logger.warning("database_url_missing_using_memory_store")
        return InMemorySessionStore()

    from sams_auth.clients.sql_store import SqlSessionStore

    return SqlSessionStore(settings.DATABASE_URL)


async def close_store(store: SessionStore) -> None:
    await store.close()
