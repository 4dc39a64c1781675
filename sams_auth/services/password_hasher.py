from __future__ import annotations

import asyncio

from argon2 import PasswordHasher, Type, extract_parameters
from argon2.exceptions import HashingError as Argon2HashingError
from argon2.exceptions import InvalidHashError, VerificationError

from sams_auth.config import Settings
from sams_auth.core.exceptions import HashingError
from sams_auth.core.logging import get_logger

logger = get_logger(__name__)


class PasswordManager:
    """Argon2id password hashing with cost parameters fixed at construction."""

    def __init__(self, settings: Settings) -> None:
        self.memory_cost = settings.ARGON2_MEMORY_COST
        self.time_cost = settings.ARGON2_TIME_COST
        self.parallelism = settings.ARGON2_PARALLELISM
        self._hasher = PasswordHasher(
            time_cost=self.time_cost,
            memory_cost=self.memory_cost,
            parallelism=self.parallelism,
            type=Type.ID,
        )

    async def hash_password(self, password: str) -> str:
        """Hash a password, returning a PHC string that embeds m, t and p."""
        try:
            return await asyncio.to_thread(self._hasher.hash, password)
        except (Argon2HashingError, MemoryError) as exc:
            logger.error("password_hash_failed", error=type(exc).__name__)
            raise HashingError(message="Failed to hash password") from exc

    async def verify_password(self, password: str, hashed_password: str) -> bool:
        """Return False on mismatch or on a stored hash that cannot be parsed."""
        try:
            return await asyncio.to_thread(self._hasher.verify, hashed_password, password)
        except VerificationError as exc:
            logger.debug("password_verification_failed", error=type(exc).__name__)
            return False
        except (InvalidHashError, ValueError) as exc:
            # Non-ASCII stored hashes fail to encode before argon2 parses them
            logger.warning("password_hash_malformed", error=type(exc).__name__)
            return False

    def needs_rehash(self, hashed_password: str) -> bool:
        """True when any configured cost exceeds what the stored hash was made with."""
        try:
            params = extract_parameters(hashed_password)
        except (InvalidHashError, ValueError, TypeError):
            return True
        return (
            params.memory_cost < self.memory_cost
            or params.time_cost < self.time_cost
            or params.parallelism < self.parallelism
        )

    def get_config(self) -> dict[str, int]:
        return {
            "memory_cost": self.memory_cost,
            "time_cost": self.time_cost,
            "parallelism": self.parallelism,
            "memory_mb": round(self.memory_cost / 1024),
        }
