# Hey future me - these are for Docker/Kubernetes probes, NOT for "is the user logged in"
# (that's /api/auth/status).
#
# - /health/live  -> the process answers
# - /health/ready -> the lifespan finished wiring the RealmLinkService
"""Health check endpoints for Docker/Kubernetes probes."""

from datetime import UTC, datetime

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

router = APIRouter()


class LivenessStatus(BaseModel):
    """Simple liveness probe response."""

    status: str = Field(description="alive")
    timestamp: str = Field(description="ISO timestamp")


class ReadinessStatus(BaseModel):
    """Readiness probe response."""

    status: str = Field(description="ready or not_ready")
    timestamp: str = Field(description="ISO timestamp")
    link_service: bool = Field(description="RealmLinkService initialized")


@router.get("/live", response_model=LivenessStatus)
async def liveness_probe() -> LivenessStatus:
    """Liveness probe - never touches the session or the network."""
    return LivenessStatus(status="alive", timestamp=datetime.now(UTC).isoformat())


@router.get("/ready", response_model=ReadinessStatus)
async def readiness_probe(request: Request) -> JSONResponse:
    """Readiness probe - 503 until startup wired the service."""
    ready = getattr(request.app.state, "link_service", None) is not None
    body = ReadinessStatus(
        status="ready" if ready else "not_ready",
        timestamp=datetime.now(UTC).isoformat(),
        link_service=ready,
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body.model_dump(),
    )
