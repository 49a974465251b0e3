"""API router initialization."""

# Hey future me, this is the MAIN API router aggregator! main.py mounts it under /api, so the
# endpoints end up as /api/auth/login, /api/realms/worlds, ... Tags group them in Swagger.

from fastapi import APIRouter

from realmlink.api.routers import auth, health, realms

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(realms.router, prefix="/realms", tags=["Realms"])

__all__ = ["api_router", "auth", "health", "realms"]
