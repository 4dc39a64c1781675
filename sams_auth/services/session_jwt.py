from __future__ import annotations

import base64
import binascii
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import jwt

from sams_auth.config import Settings
from sams_auth.core.exceptions import ConfigurationError
from sams_auth.core.logging import get_logger
from sams_auth.schemas.domain import Session

logger = get_logger(__name__)

JWT_ALGORITHM = "HS256"
SECRET_KEY_BYTES = 32


@dataclass(frozen=True)
class JWTConfig:
    secret: bytes
    expiration_seconds: int = 300
    issuer: str = "sams-ai-auth"
    audience: str = "sams-ai-users"


class JWTSessionManager:
    """Short-lived signed session summaries, checked without a store lookup.

    A valid token only proves the bearer held a live session token when it
    was issued. The secret hash is never embedded.
    """

    def __init__(self, config: JWTConfig) -> None:
        self._config = config

    @property
    def expiration_seconds(self) -> int:
        return self._config.expiration_seconds

    def create_session_jwt(self, session: Session, now: int | None = None) -> str:
        issued_at = int(time.time()) if now is None else now
        payload = {
            "iss": self._config.issuer,
            "aud": self._config.audience,
            "iat": issued_at,
            "exp": issued_at + self._config.expiration_seconds,
            "session": {
                "id": session.id,
                "userId": session.user_id,
                "lastVerifiedAt": int(session.last_verified_at.timestamp()),
                "fresh": session.fresh,
            },
        }
        return jwt.encode(payload, self._config.secret, algorithm=JWT_ALGORITHM)

    def validate_session_jwt(self, token: str | None) -> Session | None:
        """Return the embedded session, or None if the token fails any check."""
        if not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self._config.secret,
                algorithms=[JWT_ALGORITHM],
                audience=self._config.audience,
                issuer=self._config.issuer,
                options={"require": ["exp", "iat", "iss", "aud"]},
            )
        except jwt.InvalidTokenError as exc:
            logger.debug("session_jwt_rejected", reason=type(exc).__name__)
            return None

        return self._session_from_payload(payload.get("session"))

    @staticmethod
    def _session_from_payload(data: Any) -> Session | None:
        if not isinstance(data, dict):
            logger.debug("session_jwt_rejected", reason="missing_session_claim")
            return None

        session_id = data.get("id")
        user_id = data.get("userId")
        last_verified_at = data.get("lastVerifiedAt")
        fresh = data.get("fresh")

        if (
            not isinstance(session_id, str)
            or not isinstance(user_id, str)
            or isinstance(last_verified_at, bool)
            or not isinstance(last_verified_at, (int, float))
            or not isinstance(fresh, bool)
        ):
            logger.debug("session_jwt_rejected", reason="malformed_session_claim")
            return None

        try:
            verified_at = datetime.fromtimestamp(last_verified_at, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.debug("session_jwt_rejected", reason="malformed_session_claim")
            return None

        return Session(
            id=session_id,
            user_id=user_id,
            last_verified_at=verified_at,
            fresh=fresh,
            secret_hash=b"",
        )

    @staticmethod
    def generate_secret_key() -> bytes:
        return secrets.token_bytes(SECRET_KEY_BYTES)


def build_jwt_config(settings: Settings) -> JWTConfig:
    """Resolve the signing key once for the process.

    Without ``JWT_SECRET`` a random key is used, so every restart invalidates
    outstanding fast-path tokens and callers fall back to the session token.
    """
    if settings.JWT_SECRET is None or not settings.JWT_SECRET.get_secret_value():
        logger.warning("jwt_secret_missing_using_random_key")
        secret = JWTSessionManager.generate_secret_key()
    else:
        try:
            secret = base64.b64decode(settings.JWT_SECRET.get_secret_value(), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ConfigurationError(
                message="JWT_SECRET is not valid base64",
                detail=type(exc).__name__,
            ) from exc
        if not secret:
            raise ConfigurationError(message="JWT_SECRET decodes to an empty key")

    return JWTConfig(
        secret=secret,
        expiration_seconds=settings.JWT_EXPIRATION_SECONDS,
        issuer=settings.JWT_ISSUER,
        audience=settings.JWT_AUDIENCE,
    )
