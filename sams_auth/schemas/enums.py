from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    INTERNAL_ERROR = "INTERNAL_ERROR"
    HASHING_FAILED = "HASHING_FAILED"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    SCHEMA_MISSING = "SCHEMA_MISSING"
    USER_EXISTS = "USER_EXISTS"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"


class UserRole(str, Enum):
    """Lab roles, lowest to highest privilege."""

    RESEARCHER = "researcher"
    TECHNICIAN = "technician"
    LAB_MANAGER = "lab_manager"
    ADMIN = "admin"

    @property
    def level(self) -> int:
        return ROLE_LEVELS[self]


ROLE_LEVELS: dict[UserRole, int] = {
    UserRole.RESEARCHER: 1,
    UserRole.TECHNICIAN: 2,
    UserRole.LAB_MANAGER: 3,
    UserRole.ADMIN: 4,
}


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
