"""Create the users and sessions tables in the configured database."""

from __future__ import annotations

import asyncio
import sys

from sams_auth.clients.store import close_store, create_store
from sams_auth.config import Settings
from sams_auth.core.exceptions import StoreError
from sams_auth.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


async def migrate(settings: Settings) -> None:
    store = create_store(settings)
    try:
        await store.connect()
        await store.create_schema()
    finally:
        await close_store(store)
    logger.info("schema_created")


def main() -> int:
    settings = Settings()
    setup_logging(log_level=settings.LOG_LEVEL, debug=settings.DEBUG)
    if not settings.DATABASE_URL:
        logger.error("database_url_missing")
        return 1
    try:
        asyncio.run(migrate(settings))
    except StoreError as exc:
        logger.error("schema_creation_failed", error_code=exc.error_code, message=exc.message)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
