from __future__ import annotations


class SamsAuthBaseError(Exception):
    """Base exception for all SAMS auth errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, detail: str | None = None) -> None:
        self.message = message
        self.detail = detail
        super().__init__(message)


class HashingError(SamsAuthBaseError):
    status_code = 500
    error_code = "HASHING_FAILED"


class ConfigurationError(SamsAuthBaseError):
    status_code = 500
    error_code = "CONFIGURATION_ERROR"


class StoreError(SamsAuthBaseError):
    """Raised by store adapters; never coerced into an anonymous session."""

    status_code = 503
    error_code = "STORE_UNAVAILABLE"


class StoreUnavailableError(StoreError):
    status_code = 503
    error_code = "STORE_UNAVAILABLE"


class SchemaMissingError(StoreError):
    status_code = 503
    error_code = "SCHEMA_MISSING"


class UserExistsError(SamsAuthBaseError):
    status_code = 409
    error_code = "USER_EXISTS"


class AuthError(SamsAuthBaseError):
    status_code = 401
    error_code = "AUTH_REQUIRED"


class InvalidCredentialsError(SamsAuthBaseError):
    status_code = 401
    error_code = "INVALID_CREDENTIALS"


class ForbiddenError(SamsAuthBaseError):
    status_code = 403
    error_code = "FORBIDDEN"


class NotFoundError(SamsAuthBaseError):
    status_code = 404
    error_code = "NOT_FOUND"
