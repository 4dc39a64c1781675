from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from sams_auth.schemas.domain import User
from sams_auth.schemas.enums import ErrorCode, UserRole


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "sams-auth"


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    role: UserRole
    email_verified: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> UserResponse:
        return cls(**user.model_dump())


class AuthResponse(BaseModel):
    success: bool
    message: str | None = None
    user: UserResponse | None = None


class ErrorResponse(BaseModel):
    error_code: ErrorCode
    message: str
    detail: str | None = None
