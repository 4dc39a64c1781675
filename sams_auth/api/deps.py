from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import Depends, Request

from sams_auth.config import Settings
from sams_auth.core.exceptions import AuthError, ForbiddenError
from sams_auth.schemas.domain import SessionValidationResult, User
from sams_auth.schemas.enums import UserRole
from sams_auth.services.permissions import has_role
from sams_auth.services.session_manager import SessionManager
from sams_auth.utils.cookies import get_session_tokens


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


async def get_auth_state(
    request: Request,
    settings: Settings = Depends(get_settings),
    manager: SessionManager = Depends(get_session_manager),
) -> SessionValidationResult:
    """Resolve the caller from cookies. Invalid credentials yield an anonymous state."""
    session_token, jwt = get_session_tokens(request, settings)
    if not session_token and not jwt:
        return SessionValidationResult.empty()
    return await manager.validate_request_tokens(session_token, jwt)


async def get_current_user(
    state: SessionValidationResult = Depends(get_auth_state),
) -> User:
    if not state.is_authenticated or state.user is None:
        raise AuthError(message="Not authenticated")
    return state.user


def require_role_dependency(required_role: UserRole) -> Callable[..., Awaitable[User]]:
    async def dependency(user: User = Depends(get_current_user)) -> User:
        if not has_role(user, required_role):
            raise ForbiddenError(
                message="Insufficient permissions",
                detail=f"required_role={required_role.value}",
            )
        return user

    return dependency
