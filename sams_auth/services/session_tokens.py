from __future__ import annotations

import hashlib
import secrets

from sams_auth.schemas.domain import GeneratedSessionToken, ParsedSessionToken

# Lowercase letters and digits without the easily confused l, o, 0 and 1
TOKEN_ALPHABET = "abcdefghijkmnpqrstuvwxyz23456789"
SESSION_ID_LENGTH = 24
SESSION_SECRET_LENGTH = 32


class SessionTokenManager:
    """Issues and checks ``<session_id>.<secret>`` session tokens.

    The id is the public lookup key. Only the SHA-256 of the secret is ever
    stored, and it is compared in constant time.
    """

    def generate_secure_random_string(self, length: int = 32) -> str:
        return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))

    def hash_secret(self, secret: str) -> bytes:
        return hashlib.sha256(secret.encode("utf-8")).digest()

    def generate_session_token(self) -> GeneratedSessionToken:
        session_id = self.generate_secure_random_string(SESSION_ID_LENGTH)
        secret = self.generate_secure_random_string(SESSION_SECRET_LENGTH)
        return GeneratedSessionToken(
            id=session_id,
            secret=secret,
            secret_hash=self.hash_secret(secret),
            token=f"{session_id}.{secret}",
        )

    def parse_session_token(self, token: str | None) -> ParsedSessionToken | None:
        if not token or not isinstance(token, str):
            return None
        parts = token.split(".")
        if len(parts) != 2:
            return None
        session_id, session_secret = parts
        if not session_id or not session_secret:
            return None
        return ParsedSessionToken(session_id=session_id, session_secret=session_secret)

    @staticmethod
    def constant_time_equal(a: bytes, b: bytes) -> bool:
        # Length is not secret; every byte is still visited when lengths match.
        if len(a) != len(b):
            return False
        result = 0
        for x, y in zip(a, b):
            result |= x ^ y
        return result == 0

    def verify_session_secret(self, provided_secret: str, stored_secret_hash: bytes) -> bool:
        provided_hash = self.hash_secret(provided_secret)
        return self.constant_time_equal(provided_hash, bytes(stored_secret_hash))
