"""API schemas for Realms worlds."""

from pydantic import BaseModel, Field

from realmlink.domain.entities import RealmsWorld


class RealmsWorldResponse(BaseModel):
    """One realm as shown to API clients."""

    id: int = Field(..., description="Realm id")
    name: str = Field(..., description="Realm name")
    owner_name: str | None = Field(default=None, description="Owner gamertag")
    motd: str | None = Field(default=None, description="Message of the day")
    state: str = Field(..., description="OPEN or CLOSED")
    expired: bool = Field(..., description="Subscription expired")
    world_type: str | None = Field(default=None, description="Game mode")
    max_players: int = Field(..., description="Player slots")
    compatibility: str = Field(..., description="COMPATIBLE, NEEDS_UPGRADE, ...")
    active_version: str | None = Field(default=None, description="Game version the realm runs")

    @classmethod
    def from_entity(cls, world: RealmsWorld) -> "RealmsWorldResponse":
        return cls(
            id=world.id,
            name=world.name,
            owner_name=world.owner_name,
            motd=world.motd,
            state=world.state,
            expired=world.expired,
            world_type=world.world_type,
            max_players=world.max_players,
            compatibility=world.compatibility,
            active_version=world.active_version,
        )


class RealmsWorldListResponse(BaseModel):
    """Response for GET /realms/worlds."""

    worlds: list[RealmsWorldResponse] = Field(default_factory=list)
    total: int = Field(0, description="Number of realms")

    @classmethod
    def from_entities(cls, worlds: list[RealmsWorld]) -> "RealmsWorldListResponse":
        return cls(
            worlds=[RealmsWorldResponse.from_entity(w) for w in worlds],
            total=len(worlds),
        )


class RealmsAvailabilityResponse(BaseModel):
    """Response for GET /realms/available."""

    available: bool = Field(..., description="Realms accepts this client version")


class JoinWorldResponse(BaseModel):
    """Response for POST /realms/worlds/{world_id}/join."""

    world_id: int
    name: str
    address: str = Field(..., description="host:port to connect to")
