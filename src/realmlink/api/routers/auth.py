"""Authentication endpoints - device-code login, status, logout."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from realmlink.api.dependencies import get_app_settings, get_link_service
from realmlink.api.schemas import (
    AuthStatusResponse,
    LoginAttemptResponse,
    MessageResponse,
    UserInfoResponse,
)
from realmlink.application.services import RealmLinkService
from realmlink.config import Settings

logger = logging.getLogger(__name__)

router = APIRouter()


# Hey future me - this may REFRESH the session as a side effect (get_user_info resolves it).
# That's intended: a status check right after startup should already report the renewed
# session, not "expired".
@router.get("/status", response_model=AuthStatusResponse)
async def auth_status(
    service: RealmLinkService = Depends(get_link_service),
) -> AuthStatusResponse:
    """Report whether a usable session exists and who is signed in."""
    info = await service.get_user_info()
    if info is None:
        return AuthStatusResponse(authenticated=False)
    return AuthStatusResponse(authenticated=True, user=UserInfoResponse.from_entity(info))


# Yo, the login runs in the BACKGROUND after this returns! We only wait until Microsoft has
# handed out the device code (or the attempt failed early), so the client can show the code.
# The client then polls GET /auth/login until state is succeeded/failed. Starting a login
# while one is running cancels the old one.
@router.post(
    "/login",
    response_model=LoginAttemptResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_login(
    service: RealmLinkService = Depends(get_link_service),
    settings: Settings = Depends(get_app_settings),
) -> LoginAttemptResponse:
    """Start a device-code login and return the code to show the user."""
    flow = service.start_login()
    await flow.wait_for_challenge(timeout=settings.auth.challenge_timeout)
    return LoginAttemptResponse.from_flow(flow)


@router.get("/login", response_model=LoginAttemptResponse)
async def get_login(
    service: RealmLinkService = Depends(get_link_service),
) -> LoginAttemptResponse:
    """State of the most recent login attempt."""
    flow = service.last_login
    if flow is None:
        raise HTTPException(status_code=404, detail="No login attempt")
    return LoginAttemptResponse.from_flow(flow)


@router.delete("/login", response_model=LoginAttemptResponse)
async def cancel_login(
    service: RealmLinkService = Depends(get_link_service),
) -> LoginAttemptResponse:
    """Cancel the login attempt in progress."""
    flow = service.active_login
    if flow is None or not service.cancel_login():
        raise HTTPException(status_code=404, detail="No login in progress")
    return LoginAttemptResponse.from_flow(flow)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    service: RealmLinkService = Depends(get_link_service),
) -> MessageResponse:
    """Delete the stored session. Safe to call when already logged out."""
    await service.clear_session()
    logger.info("User logged out")
    return MessageResponse(message="Logged out")
