from __future__ import annotations

from fastapi import APIRouter, Request

from sams_auth.schemas.responses import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()


@router.get("/health/ready", response_model=HealthResponse)
async def readiness(request: Request) -> HealthResponse:
    """Round-trip the session store; store errors surface as 503."""
    await request.app.state.store.connect()
    return HealthResponse(status="ready")
