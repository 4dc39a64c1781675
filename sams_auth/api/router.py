from __future__ import annotations

from fastapi import APIRouter

from sams_auth.api.v1 import auth, health

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, tags=["auth"])
