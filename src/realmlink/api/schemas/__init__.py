"""Pydantic request/response models for the HTTP API."""

from realmlink.api.schemas.auth import (
    AuthStatusResponse,
    LoginAttemptResponse,
    MessageResponse,
    UserInfoResponse,
)
from realmlink.api.schemas.realms import (
    JoinWorldResponse,
    RealmsAvailabilityResponse,
    RealmsWorldListResponse,
    RealmsWorldResponse,
)

__all__ = [
    "AuthStatusResponse",
    "JoinWorldResponse",
    "LoginAttemptResponse",
    "MessageResponse",
    "RealmsAvailabilityResponse",
    "RealmsWorldListResponse",
    "RealmsWorldResponse",
    "UserInfoResponse",
]
