"""RealmLinkService - the one object callers (API routes, CLI) talk to.

Hey future me - this is a FACADE, nothing clever lives here. It owns:
- the single in-flight LoginFlow (starting a new login cancels the old one)
- shutdown of the HTTP clients

Everything session-related is delegated to SessionManager, everything Realms-related to
RealmsService. Built once per process in infrastructure/lifecycle.py and stored on app.state.
"""

import logging

from realmlink.application.services.realms_service import RealmsService
from realmlink.application.services.sessions import LoginCallback, LoginFlow, SessionManager
from realmlink.domain.entities import BedrockSession, RealmsWorld, UserInfo
from realmlink.domain.ports import IIdentityProvider, IRealmsClient

logger = logging.getLogger(__name__)


class RealmLinkService:
    """Session lifecycle + Realms operations behind one surface."""

    def __init__(
        self,
        session_manager: SessionManager,
        provider: IIdentityProvider,
        realms_service: RealmsService,
        realms_client: IRealmsClient | None = None,
    ) -> None:
        """Initialize the facade.

        Args:
            session_manager: Owns the stored session
            provider: Identity provider used for new logins
            realms_service: Session-gated Realms operations
            realms_client: Closed on shutdown, if given
        """
        self._session_manager = session_manager
        self._provider = provider
        self._realms = realms_service
        self._realms_client = realms_client
        self._last_login: LoginFlow | None = None

    # =========================================================================
    # SESSION
    # =========================================================================

    async def has_valid_session(self) -> bool:
        return await self._session_manager.has_valid_session()

    async def get_current_session(self) -> BedrockSession | None:
        return await self._session_manager.resolve_session()

    async def get_user_info(self) -> UserInfo | None:
        return await self._session_manager.get_user_info()

    async def clear_session(self) -> None:
        """Log out: cancel any running login and delete the stored session."""
        self.cancel_login()
        await self._session_manager.clear()

    # =========================================================================
    # LOGIN
    # =========================================================================

    @property
    def active_login(self) -> LoginFlow | None:
        """The login attempt still in progress, if any."""
        if self._last_login is not None and not self._last_login.is_done:
            return self._last_login
        return None

    @property
    def last_login(self) -> LoginFlow | None:
        """The most recent login attempt, finished or not."""
        return self._last_login

    def start_login(
        self,
        on_challenge: LoginCallback | None = None,
        on_success: LoginCallback | None = None,
        on_error: LoginCallback | None = None,
    ) -> LoginFlow:
        """Start a device-code login. Must be called from a running event loop.

        Callbacks may be plain functions or coroutine functions. on_challenge gets the
        DeviceCodeChallenge, on_success the new session, on_error the DomainException.
        """
        previous = self.active_login
        if previous is not None:
            logger.info("Cancelling login attempt %s for a new one", previous.attempt_id)
            previous.cancel()

        flow = LoginFlow(
            self._provider,
            self._session_manager,
            on_challenge=on_challenge,
            on_success=on_success,
            on_error=on_error,
        )
        self._last_login = flow
        flow.start()
        return flow

    def cancel_login(self) -> bool:
        """Cancel the running login attempt. False if there was none."""
        flow = self.active_login
        if flow is None:
            return False
        return flow.cancel()

    # =========================================================================
    # REALMS
    # =========================================================================

    async def is_realms_available(self) -> bool:
        return await self._realms.is_available()

    async def get_worlds(self) -> list[RealmsWorld]:
        return await self._realms.get_worlds()

    async def refresh_worlds(self) -> list[RealmsWorld]:
        return await self._realms.refresh_worlds()

    async def get_world(self, world_id: int) -> RealmsWorld:
        return await self._realms.get_world(world_id)

    async def join_world(self, world_id: int) -> tuple[RealmsWorld, str]:
        """Look the realm up, then fetch its address. Returns (world, "host:port")."""
        world = await self._realms.get_world(world_id)
        return world, await self._realms.join_world(world)

    async def accept_invite(self, invite_code: str) -> RealmsWorld:
        return await self._realms.accept_invite(invite_code)

    async def leave_world(self, world_id: int) -> None:
        await self._realms.leave_world(world_id)

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    async def close(self) -> None:
        """Cancel any running login and release HTTP clients."""
        self.cancel_login()
        await self._provider.close()
        if self._realms_client is not None:
            await self._realms_client.close()
        logger.debug("RealmLinkService closed")
