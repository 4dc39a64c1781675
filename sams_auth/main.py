from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from sams_auth.api.router import api_router
from sams_auth.clients.store import SessionStore, close_store, create_store
from sams_auth.config import Settings
from sams_auth.core.exceptions import SamsAuthBaseError, SchemaMissingError
from sams_auth.core.logging import get_logger, setup_logging
from sams_auth.core.middleware import sams_auth_exception_handler
from sams_auth.services.password_hasher import PasswordManager
from sams_auth.services.session_jwt import JWTSessionManager, build_jwt_config
from sams_auth.services.session_manager import AuthConfig, SessionManager
from sams_auth.services.session_tokens import SessionTokenManager
from sams_auth.utils.retry import with_retry

logger = get_logger(__name__)


def build_session_manager(settings: Settings, store: SessionStore) -> SessionManager:
    password_manager = PasswordManager(settings)
    logger.info("password_hasher_configured", **password_manager.get_config())
    return SessionManager(
        store=store,
        password_manager=password_manager,
        token_manager=SessionTokenManager(),
        jwt_manager=JWTSessionManager(build_jwt_config(settings)),
        config=AuthConfig.from_settings(settings),
    )


async def _startup_cleanup(manager: SessionManager) -> None:
    try:
        cleaned = await manager.cleanup_inactive_sessions()
    except SchemaMissingError:
        logger.warning("store_schema_missing", hint="run `sams-auth-migrate` to create tables")
        return
    if cleaned > 0:
        logger.info("startup_cleanup_completed", removed=cleaned)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    setup_logging(log_level=settings.LOG_LEVEL, debug=settings.DEBUG)

    store: SessionStore = app.state.store or create_store(settings)
    connect = with_retry(settings.STORE_CONNECT_RETRIES, settings.STORE_BACKOFF_FACTOR)(
        store.connect
    )
    await connect()

    try:
        manager = build_session_manager(settings, store)
        await _startup_cleanup(manager)
    except Exception:
        logger.error("startup_failed", exc_info=True)
        await close_store(store)
        raise

    app.state.store = store
    app.state.session_manager = manager
    try:
        yield
    finally:
        await manager.drain_background_tasks()
        await close_store(store)


def create_app(settings: Settings | None = None, store: SessionStore | None = None) -> FastAPI:
    app = FastAPI(
        title="SAMS Auth API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings or Settings()
    app.state.store = store
    app.add_exception_handler(SamsAuthBaseError, sams_auth_exception_handler)
    app.include_router(api_router)
    return app


app = create_app()
