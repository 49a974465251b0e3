"""Realms world entity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


# Hey future me - Realms JSON uses camelCase and is not very consistent about which fields
# are present (invited realms have no ownerUUID for some accounts). from_api() tolerates
# missing optional fields but a world without an id is garbage - KeyError is fine there.
@dataclass(frozen=True)
class RealmsWorld:
    """A Bedrock Realm the account owns or was invited to."""

    id: int
    name: str
    owner_name: str | None = None
    owner_uuid: str | None = None
    motd: str | None = None
    state: str = "OPEN"
    expired: bool = False
    world_type: str | None = None
    max_players: int = 10
    compatibility: str = "COMPATIBLE"
    active_version: str | None = None

    @property
    def is_compatible(self) -> bool:
        """True if our client version can join this realm."""
        return self.compatibility == "COMPATIBLE"

    @property
    def is_open(self) -> bool:
        """True if the realm is currently running."""
        return self.state == "OPEN"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> RealmsWorld:
        """Build from a Realms API world object."""
        return cls(
            id=int(data["id"]),
            name=data.get("name") or "",
            owner_name=data.get("owner"),
            owner_uuid=data.get("ownerUUID"),
            motd=data.get("motd"),
            state=data.get("state", "OPEN"),
            expired=bool(data.get("expired", False)),
            world_type=data.get("worldType"),
            max_players=int(data.get("maxPlayers", 10)),
            compatibility=data.get("compatibility", "COMPATIBLE"),
            active_version=data.get("activeVersion"),
        )
