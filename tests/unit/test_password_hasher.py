from __future__ import annotations

from unittest.mock import patch

import pytest
from argon2 import PasswordHasher
from argon2.exceptions import HashingError as Argon2HashingError

from sams_auth.config import Settings
from sams_auth.core.exceptions import HashingError
from sams_auth.services.password_hasher import PasswordManager


class TestPasswordManager:
    @pytest.mark.asyncio
    async def test_hash_and_verify(self, password_manager):
        hashed = await password_manager.hash_password("TestPassword123!")
        assert hashed.startswith("$argon2id$")
        assert await password_manager.verify_password("TestPassword123!", hashed) is True

    @pytest.mark.asyncio
    async def test_wrong_password_rejected(self, password_manager):
        hashed = await password_manager.hash_password("TestPassword123!")
        assert await password_manager.verify_password("wrong-password", hashed) is False
        assert await password_manager.verify_password("TestPassword123", hashed) is False

    @pytest.mark.asyncio
    async def test_hashes_are_salted(self, password_manager):
        first = await password_manager.hash_password("same")
        second = await password_manager.hash_password("same")
        assert first != second

    @pytest.mark.asyncio
    async def test_hash_embeds_configured_costs(self, password_manager):
        hashed = await password_manager.hash_password("pw")
        assert "m=1024,t=1,p=1" in hashed

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "stored",
        [
            "",
            "nodollar",
            "not-a-hash",
            "é-not-ascii",
            "$argon2id$v=19$m=1024,t=1,p=1$üsalt$ühash",
        ],
    )
    async def test_malformed_hash_is_false_not_error(self, password_manager, stored):
        assert await password_manager.verify_password("pw", stored) is False

    @pytest.mark.asyncio
    async def test_primitive_failure_raises_hashing_error(self, password_manager):
        with patch.object(PasswordHasher, "hash", side_effect=Argon2HashingError("oom")):
            with pytest.raises(HashingError) as exc_info:
                await password_manager.hash_password("pw")
        assert exc_info.value.message == "Failed to hash password"

    @pytest.mark.asyncio
    async def test_needs_rehash_when_costs_increase(self, password_manager):
        hashed = await password_manager.hash_password("pw")
        assert password_manager.needs_rehash(hashed) is False

        stronger = PasswordManager(
            Settings(ARGON2_MEMORY_COST=2048, ARGON2_TIME_COST=1, ARGON2_PARALLELISM=1)
        )
        assert stronger.needs_rehash(hashed) is True

    @pytest.mark.asyncio
    async def test_needs_rehash_false_when_costs_decrease(self, password_manager):
        hashed = await password_manager.hash_password("pw")
        weaker = PasswordManager(
            Settings(ARGON2_MEMORY_COST=512, ARGON2_TIME_COST=1, ARGON2_PARALLELISM=1)
        )
        assert weaker.needs_rehash(hashed) is False

    def test_needs_rehash_unparsable(self, password_manager):
        assert password_manager.needs_rehash("garbage") is True
        assert password_manager.needs_rehash("$argon2id$v=19$nonsense") is True

    def test_defaults(self):
        manager = PasswordManager(Settings())
        assert manager.get_config() == {
            "memory_cost": 65536,
            "time_cost": 3,
            "parallelism": 1,
            "memory_mb": 64,
        }
