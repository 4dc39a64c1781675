from __future__ import annotations

from fastapi import Request, Response

from sams_auth.config import Settings


def get_session_tokens(request: Request, settings: Settings) -> tuple[str | None, str | None]:
    """Return (session_token, jwt) from the request cookies."""
    session_token = request.cookies.get(settings.SESSION_COOKIE_NAME) or None
    jwt = request.cookies.get(settings.JWT_COOKIE_NAME) or None
    return session_token, jwt


def set_session_cookies(
    response: Response,
    settings: Settings,
    session_token: str,
    jwt: str,
    jwt_max_age: int | None = None,
) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session_token,
        max_age=settings.SESSION_COOKIE_MAX_AGE_SECONDS,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    response.set_cookie(
        key=settings.JWT_COOKIE_NAME,
        value=jwt,
        max_age=jwt_max_age if jwt_max_age is not None else settings.JWT_EXPIRATION_SECONDS,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


def clear_session_cookies(response: Response, settings: Settings) -> None:
    for name in (settings.SESSION_COOKIE_NAME, settings.JWT_COOKIE_NAME):
        response.delete_cookie(
            key=name,
            path="/",
            httponly=True,
            secure=settings.is_production,
            samesite="lax",
        )
