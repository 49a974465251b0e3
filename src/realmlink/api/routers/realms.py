"""Realms endpoints. All of them need a usable session (401 otherwise)."""

from fastapi import APIRouter, Depends, Path, Response, status

from realmlink.api.dependencies import get_link_service
from realmlink.api.schemas import (
    JoinWorldResponse,
    RealmsAvailabilityResponse,
    RealmsWorldListResponse,
    RealmsWorldResponse,
)
from realmlink.application.services import RealmLinkService

router = APIRouter()


@router.get("/available", response_model=RealmsAvailabilityResponse)
async def realms_available(
    service: RealmLinkService = Depends(get_link_service),
) -> RealmsAvailabilityResponse:
    """Check whether Realms accepts this client version."""
    return RealmsAvailabilityResponse(available=await service.is_realms_available())


@router.get("/worlds", response_model=RealmsWorldListResponse)
async def list_worlds(
    service: RealmLinkService = Depends(get_link_service),
) -> RealmsWorldListResponse:
    """List realms the account owns or was invited to."""
    return RealmsWorldListResponse.from_entities(await service.get_worlds())


@router.post("/worlds/refresh", response_model=RealmsWorldListResponse)
async def refresh_worlds(
    service: RealmLinkService = Depends(get_link_service),
) -> RealmsWorldListResponse:
    """Renew the session, then list realms."""
    return RealmsWorldListResponse.from_entities(await service.refresh_worlds())


@router.post("/worlds/{world_id}/join", response_model=JoinWorldResponse)
async def join_world(
    world_id: int = Path(..., ge=1),
    service: RealmLinkService = Depends(get_link_service),
) -> JoinWorldResponse:
    """Get the address to connect to a realm (404 unknown, 400 expired/incompatible)."""
    world, address = await service.join_world(world_id)
    return JoinWorldResponse(world_id=world.id, name=world.name, address=address)


@router.delete("/worlds/{world_id}", status_code=status.HTTP_204_NO_CONTENT)
async def leave_world(
    world_id: int = Path(..., ge=1),
    service: RealmLinkService = Depends(get_link_service),
) -> Response:
    """Leave a realm the account was invited to."""
    await service.leave_world(world_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/invites/{invite_code}/accept", response_model=RealmsWorldResponse)
async def accept_invite(
    invite_code: str = Path(..., min_length=1, max_length=64),
    service: RealmLinkService = Depends(get_link_service),
) -> RealmsWorldResponse:
    """Accept a realm invite link code."""
    return RealmsWorldResponse.from_entity(await service.accept_invite(invite_code))
