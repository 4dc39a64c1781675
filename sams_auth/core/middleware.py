from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from sams_auth.core.exceptions import SamsAuthBaseError
from sams_auth.core.logging import get_logger
from sams_auth.schemas.responses import ErrorResponse

logger = get_logger(__name__)


async def sams_auth_exception_handler(request: Request, exc: SamsAuthBaseError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "sams_auth_error",
        error_code=exc.error_code,
        message=exc.message,
        detail=exc.detail,
        path=request.url.path,
    )
    # Server-side detail stays in the logs
    body = ErrorResponse(
        error_code=exc.error_code,
        message=exc.message,
        detail=exc.detail if exc.status_code < 500 else None,
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))
