from __future__ import annotations

import asyncio
import re
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import (
    IntegrityError,
    OperationalError,
    ProgrammingError,
    SQLAlchemyError,
)
from sqlalchemy.pool import StaticPool

from sams_auth.core.exceptions import (
    SchemaMissingError,
    StoreError,
    StoreUnavailableError,
    UserExistsError,
)
from sams_auth.core.logging import get_logger
from sams_auth.schemas.domain import Session, User, UserWithPassword
from sams_auth.schemas.enums import UserRole

logger = get_logger(__name__)

UNDEFINED_TABLE_SQLSTATE = "42P01"
_MISSING_RELATION_RE = re.compile(r"no such table|relation\s+\"?\w+\"?\s+does not exist", re.I)

metadata = sa.MetaData()

users = sa.Table(
    "users",
    metadata,
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("email", sa.String(254), nullable=False, unique=True),
    sa.Column("password_hash", sa.Text, nullable=False),
    sa.Column("name", sa.String(200), nullable=False),
    sa.Column("role", sa.String(32), nullable=False, server_default=UserRole.RESEARCHER.value),
    sa.Column("email_verified", sa.Boolean, nullable=False, server_default=sa.false()),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
)

sessions = sa.Table(
    "sessions",
    metadata,
    sa.Column("id", sa.String(64), primary_key=True),
    sa.Column(
        "user_id",
        sa.String(36),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    sa.Column("last_verified_at", sa.DateTime(timezone=True), nullable=False, index=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("secret_hash", sa.LargeBinary, nullable=False),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive values; everything is written in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_missing_relation(exc: SQLAlchemyError) -> bool:
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code == UNDEFINED_TABLE_SQLSTATE:
        return True
    return bool(_MISSING_RELATION_RE.search(str(orig if orig is not None else exc)))


def _engine_kwargs(url: str) -> dict[str, Any]:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in url or url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


class SqlSessionStore:
    """SQLAlchemy Core store.

    Blocking calls run in a worker thread. Each call checks a connection out
    of the pool for the duration of one transaction. Driver errors are
    classified here so callers only see ``StoreError`` subclasses.
    """

    def __init__(self, database_url: str, engine: Engine | None = None) -> None:
        self._engine = engine or sa.create_engine(database_url, **_engine_kwargs(database_url))

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Connection]:
        try:
            with self._engine.begin() as conn:
                yield conn
        except (OperationalError, ProgrammingError) as exc:
            if is_missing_relation(exc):
                logger.error("store_schema_missing", operation=operation)
                raise SchemaMissingError(
                    message="Database tables not found",
                    detail="run the schema migration before starting the service",
                ) from exc
            logger.error("store_operation_failed", operation=operation, error=type(exc).__name__)
            raise StoreUnavailableError(message="Store unavailable", detail=operation) from exc
        except IntegrityError as exc:
            logger.error("store_integrity_error", operation=operation)
            raise StoreError(message="Store constraint violated", detail=operation) from exc
        except SQLAlchemyError as exc:
            logger.error("store_operation_failed", operation=operation, error=type(exc).__name__)
            raise StoreUnavailableError(message="Store unavailable", detail=operation) from exc

    # Lifecycle

    async def connect(self) -> None:
        await asyncio.to_thread(self._ping)
        logger.info("store_connected", dialect=self._engine.dialect.name)

    def _ping(self) -> None:
        with self._transaction("connect") as conn:
            conn.execute(sa.text("SELECT 1"))

    async def close(self) -> None:
        await asyncio.to_thread(self._engine.dispose)

    async def create_schema(self) -> None:
        await asyncio.to_thread(self._create_schema)

    def _create_schema(self) -> None:
        with self._transaction("create_schema") as conn:
            metadata.create_all(conn)

    # Users

    async def create_user(
        self,
        *,
        email: str,
        name: str,
        password_hash: str,
        role: UserRole | None = None,
    ) -> User:
        return await asyncio.to_thread(
            self._create_user, email.lower(), name, password_hash, role or UserRole.RESEARCHER
        )

    def _create_user(self, email: str, name: str, password_hash: str, role: UserRole) -> User:
        now = _utcnow()
        row = {
            "id": str(uuid.uuid4()),
            "email": email,
            "password_hash": password_hash,
            "name": name,
            "role": role.value,
            "email_verified": False,
            "created_at": now,
            "updated_at": now,
        }
        try:
            with self._transaction("create_user") as conn:
                conn.execute(users.insert().values(**row))
        except StoreError as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise UserExistsError(message="User with this email already exists") from exc
            raise
        return self._user_from_row(row)

    async def get_user_by_email(self, email: str) -> User | None:
        record = await self.get_user_by_email_with_password(email)
        return record.without_password() if record else None

    async def get_user_by_id(self, user_id: str) -> User | None:
        return await asyncio.to_thread(self._get_user_by_id, user_id)

    def _get_user_by_id(self, user_id: str) -> User | None:
        with self._transaction("get_user_by_id") as conn:
            row = conn.execute(sa.select(users).where(users.c.id == user_id)).mappings().first()
        return self._user_from_row(row) if row else None

    async def get_user_by_email_with_password(self, email: str) -> UserWithPassword | None:
        return await asyncio.to_thread(self._get_user_with_password, email.lower())

    def _get_user_with_password(self, email: str) -> UserWithPassword | None:
        with self._transaction("get_user_by_email") as conn:
            row = conn.execute(sa.select(users).where(users.c.email == email)).mappings().first()
        if row is None:
            return None
        user = self._user_from_row(row)
        return UserWithPassword(**user.model_dump(), password_hash=row["password_hash"])

    async def update_user_password_hash(self, user_id: str, password_hash: str) -> None:
        await asyncio.to_thread(self._update_password_hash, user_id, password_hash)

    def _update_password_hash(self, user_id: str, password_hash: str) -> None:
        with self._transaction("update_user_password_hash") as conn:
            conn.execute(
                users.update()
                .where(users.c.id == user_id)
                .values(password_hash=password_hash, updated_at=_utcnow())
            )

    async def delete_user(self, user_id: str) -> None:
        await asyncio.to_thread(self._delete_user, user_id)

    def _delete_user(self, user_id: str) -> None:
        # SQLite ignores ON DELETE CASCADE unless foreign keys are enabled.
        with self._transaction("delete_user") as conn:
            conn.execute(sessions.delete().where(sessions.c.user_id == user_id))
            conn.execute(users.delete().where(users.c.id == user_id))

    @staticmethod
    def _user_from_row(row: Any) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            role=UserRole(row["role"]),
            email_verified=bool(row["email_verified"]),
            created_at=_as_utc(row["created_at"]),
            updated_at=_as_utc(row["updated_at"]),
        )

    # Sessions

    async def create_session(
        self,
        session_id: str,
        user_id: str,
        last_verified_at: datetime,
        secret_hash: bytes,
    ) -> Session:
        await asyncio.to_thread(
            self._create_session, session_id, user_id, last_verified_at, secret_hash
        )
        return Session(
            id=session_id,
            user_id=user_id,
            last_verified_at=last_verified_at,
            fresh=True,
            secret_hash=secret_hash,
        )

    def _create_session(
        self, session_id: str, user_id: str, last_verified_at: datetime, secret_hash: bytes
    ) -> None:
        with self._transaction("create_session") as conn:
            conn.execute(
                sessions.insert().values(
                    id=session_id,
                    user_id=user_id,
                    last_verified_at=last_verified_at,
                    created_at=_utcnow(),
                    secret_hash=secret_hash,
                )
            )

    async def get_session_by_id(self, session_id: str) -> Session | None:
        return await asyncio.to_thread(self._get_session_by_id, session_id)

    def _get_session_by_id(self, session_id: str) -> Session | None:
        with self._transaction("get_session_by_id") as conn:
            row = (
                conn.execute(sa.select(sessions).where(sessions.c.id == session_id))
                .mappings()
                .first()
            )
        if row is None:
            return None
        return Session(
            id=row["id"],
            user_id=row["user_id"],
            last_verified_at=_as_utc(row["last_verified_at"]),
            fresh=False,
            secret_hash=bytes(row["secret_hash"]),
        )

    async def update_session_last_verified(
        self, session_id: str, last_verified_at: datetime
    ) -> None:
        await asyncio.to_thread(self._update_last_verified, session_id, last_verified_at)

    def _update_last_verified(self, session_id: str, last_verified_at: datetime) -> None:
        with self._transaction("update_session_last_verified") as conn:
            conn.execute(
                sessions.update()
                .where(sessions.c.id == session_id)
                .values(last_verified_at=last_verified_at)
            )

    async def delete_session(self, session_id: str) -> None:
        await asyncio.to_thread(self._delete_where, sessions.c.id == session_id, "delete_session")

    async def delete_user_sessions(self, user_id: str) -> None:
        await asyncio.to_thread(
            self._delete_where, sessions.c.user_id == user_id, "delete_user_sessions"
        )

    async def cleanup_inactive_sessions(self, cutoff: datetime) -> int:
        return await asyncio.to_thread(
            self._delete_where, sessions.c.last_verified_at < cutoff, "cleanup_inactive_sessions"
        )

    def _delete_where(self, clause: Any, operation: str) -> int:
        with self._transaction(operation) as conn:
            result = conn.execute(sessions.delete().where(clause))
        return result.rowcount or 0
