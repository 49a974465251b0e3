"""Realms operations gated on a valid session."""

import logging

from realmlink.application.services.sessions.session_manager import SessionManager
from realmlink.domain.entities import BedrockSession, RealmsWorld, XstsToken
from realmlink.domain.exceptions import (
    BusinessRuleViolation,
    EntityNotFoundException,
    NoSessionError,
)
from realmlink.domain.ports import IRealmsClient

logger = logging.getLogger(__name__)


class RealmsService:
    """Thin pass-through to the Realms API.

    Hey future me - every call resolves the session FIRST (which may refresh it) and only
    then talks to Realms. No session => NoSessionError and the client is never touched.
    The client itself is stateless; don't cache tokens here either.
    """

    def __init__(self, session_manager: SessionManager, realms_client: IRealmsClient) -> None:
        self._session_manager = session_manager
        self._client = realms_client

    async def _realms_token(self) -> XstsToken:
        session = await self._session_manager.resolve_session()
        return self._token_of(session)

    @staticmethod
    def _token_of(session: BedrockSession | None) -> XstsToken:
        if session is None or session.realms_xsts is None:
            raise NoSessionError()
        return session.realms_xsts

    async def is_available(self) -> bool:
        """True if Realms accepts our client version."""
        return await self._client.is_available(await self._realms_token())

    async def get_worlds(self) -> list[RealmsWorld]:
        """List realms the account owns or was invited to."""
        worlds = await self._client.get_worlds(await self._realms_token())
        logger.debug("Fetched %d realms", len(worlds))
        return worlds

    async def get_world(self, world_id: int) -> RealmsWorld:
        """Look up one realm by id.

        Raises:
            EntityNotFoundException: If the account can't see a realm with that id
        """
        for world in await self.get_worlds():
            if world.id == world_id:
                return world
        raise EntityNotFoundException("Realm", world_id)

    async def join_world(self, world: RealmsWorld) -> str:
        """Get the address to connect to a realm.

        Raises:
            BusinessRuleViolation: If the realm is expired or needs a different client version
        """
        if world.expired:
            raise BusinessRuleViolation(f"Cannot join expired realm: {world.name}")
        if not world.is_compatible:
            raise BusinessRuleViolation(
                f"Realm {world.name} is not compatible with this client ({world.compatibility})"
            )

        address = await self._client.join_world(await self._realms_token(), world.id)
        logger.info("Resolved address for realm %s", world.id)
        return address

    async def accept_invite(self, invite_code: str) -> RealmsWorld:
        """Accept an invite link code."""
        world = await self._client.accept_invite(await self._realms_token(), invite_code)
        logger.info("Accepted invite to realm %s", world.id)
        return world

    async def leave_world(self, world_id: int) -> None:
        """Leave a realm the account was invited to."""
        await self._client.leave_world(await self._realms_token(), world_id)
        logger.info("Left realm %s", world_id)

    async def refresh_worlds(self) -> list[RealmsWorld]:
        """Force a session refresh, then list realms with the renewed token.

        Raises:
            NoSessionError: If there is no session or it can't be renewed
            TokenRefreshException: On a transient refresh failure
        """
        session = await self._session_manager.force_refresh()
        return await self._client.get_worlds(self._token_of(session))
