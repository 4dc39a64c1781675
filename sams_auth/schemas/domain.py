from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from sams_auth.schemas.enums import RequestStatus, UserRole


class User(BaseModel):
    """Identity record. The password hash is never part of it."""

    id: str
    email: str
    name: str
    role: UserRole = UserRole.RESEARCHER
    email_verified: bool = False
    created_at: datetime
    updated_at: datetime


class UserWithPassword(User):
    password_hash: str

    def without_password(self) -> User:
        return User(**self.model_dump(exclude={"password_hash"}))


class Session(BaseModel):
    id: str
    user_id: str
    last_verified_at: datetime
    fresh: bool = False
    # SHA-256 of the session secret; empty when rebuilt from a fast-path token
    secret_hash: bytes = b""


class SessionValidationResult(BaseModel):
    session: Session | None = None
    user: User | None = None

    @classmethod
    def empty(cls) -> SessionValidationResult:
        return cls(session=None, user=None)

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None and self.user is not None


class GeneratedSessionToken(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    secret: str
    secret_hash: bytes
    token: str


class ParsedSessionToken(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    session_secret: str


class CreatedSession(BaseModel):
    session: Session
    token: str
    jwt: str


class AuthenticatedSession(BaseModel):
    user: User
    session_token: str
    jwt: str


class CreateUserData(BaseModel):
    email: str
    password: str
    name: str
    role: UserRole | None = None


class LoginCredentials(BaseModel):
    email: str
    password: str


class LabRequest(BaseModel):
    """Minimal view of a sequencing request, as needed for access checks."""

    id: str
    user_id: str
    status: RequestStatus = RequestStatus.PENDING


class LabSample(BaseModel):
    """Minimal view of a sample, as needed for access checks."""

    id: str
    request_id: str
