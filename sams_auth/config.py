from __future__ import annotations

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment
    APP_ENV: str = "development"

    # Argon2id password hashing
    ARGON2_MEMORY_COST: int = 65536  # KB (64 MB)
    ARGON2_TIME_COST: int = 3
    ARGON2_PARALLELISM: int = 1

    # Fast-path session JWT
    JWT_SECRET: SecretStr | None = None  # base64
    JWT_EXPIRATION_SECONDS: int = 300
    JWT_ISSUER: str = "sams-ai-auth"
    JWT_AUDIENCE: str = "sams-ai-users"

    # Session lifecycle
    SESSION_INACTIVITY_TIMEOUT_SECONDS: int = 10 * 24 * 60 * 60
    SESSION_ACTIVITY_CHECK_INTERVAL_SECONDS: int = 60 * 60
    SESSION_FRESH_WINDOW_SECONDS: int = 24 * 60 * 60
    SESSION_CLEANUP_PROBABILITY: float = 0.01

    # Cookies
    SESSION_COOKIE_NAME: str = "auth_session"
    JWT_COOKIE_NAME: str = "auth_jwt"
    SESSION_COOKIE_MAX_AGE_SECONDS: int = 30 * 24 * 60 * 60

    # Store
    DATABASE_URL: str = ""
    STORE_CONNECT_RETRIES: int = 3
    STORE_BACKOFF_FACTOR: float = 0.5

    # Logging
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"
