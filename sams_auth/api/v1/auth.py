from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from sams_auth.api.deps import (
    get_auth_state,
    get_current_user,
    get_session_manager,
    get_settings,
    require_role_dependency,
)
from sams_auth.config import Settings
from sams_auth.core.exceptions import InvalidCredentialsError, NotFoundError
from sams_auth.core.logging import get_logger
from sams_auth.schemas.domain import (
    CreateUserData,
    LoginCredentials,
    SessionValidationResult,
    User,
)
from sams_auth.schemas.enums import UserRole
from sams_auth.schemas.requests import LoginRequest, SignupRequest
from sams_auth.schemas.responses import AuthResponse, UserResponse
from sams_auth.services.session_manager import SessionManager
from sams_auth.utils.cookies import clear_session_cookies, set_session_cookies

logger = get_logger(__name__)
router = APIRouter(prefix="/auth")


@router.post("/signup", response_model=AuthResponse, status_code=201)
async def signup(
    body: SignupRequest,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    result = await manager.register_and_login(
        CreateUserData(email=body.email, password=body.password, name=body.name)
    )
    set_session_cookies(
        response,
        settings,
        result.session_token,
        result.jwt,
        jwt_max_age=manager.jwt_expiration_seconds,
    )
    return AuthResponse(
        success=True,
        message="Account created successfully",
        user=UserResponse.from_user(result.user),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    result = await manager.login_user(LoginCredentials(email=body.email, password=body.password))
    if result is None:
        raise InvalidCredentialsError(message="Invalid email or password")

    set_session_cookies(
        response,
        settings,
        result.session_token,
        result.jwt,
        jwt_max_age=manager.jwt_expiration_seconds,
    )
    return AuthResponse(
        success=True,
        message="Login successful",
        user=UserResponse.from_user(result.user),
    )


@router.post("/logout", response_model=AuthResponse)
async def logout(
    response: Response,
    state: SessionValidationResult = Depends(get_auth_state),
    manager: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    if state.session is not None:
        await manager.invalidate_session(state.session.id)
        logger.info("logout_complete", session_id=state.session.id)
    clear_session_cookies(response, settings)
    return AuthResponse(success=True, message="Logged out successfully")


@router.post("/logout-all", response_model=AuthResponse)
async def logout_everywhere(
    response: Response,
    user: User = Depends(get_current_user),
    manager: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    await manager.invalidate_user_sessions(user.id)
    clear_session_cookies(response, settings)
    return AuthResponse(success=True, message="Logged out on all devices")


@router.get("/me", response_model=AuthResponse)
async def me(user: User = Depends(get_current_user)) -> AuthResponse:
    return AuthResponse(success=True, user=UserResponse.from_user(user))


@router.post("/users/{user_id}/sessions/revoke", response_model=AuthResponse)
async def revoke_user_sessions(
    user_id: str,
    admin: User = Depends(require_role_dependency(UserRole.ADMIN)),
    manager: SessionManager = Depends(get_session_manager),
) -> AuthResponse:
    if await manager.get_user_by_id(user_id) is None:
        raise NotFoundError(message="User not found", detail=f"user_id={user_id}")
    await manager.invalidate_user_sessions(user_id)
    logger.info("user_sessions_revoked", user_id=user_id, revoked_by=admin.id)
    return AuthResponse(success=True, message="Sessions revoked")
