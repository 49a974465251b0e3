"""Session Manager - the single source of truth for "do we have a usable session".

Hey future me - this is THE place every caller goes through before talking to Realms!

Resolution algorithm (resolve_session):
1. load the record from the store          -> nothing there        => None
2. malformed record                        -> delete it            => None
3. no Realms XSTS token (not usable)       -> delete it            => None
4. fresh                                   -> return as-is (no write!)
5. stale                                   -> refresh
   5a. refresh fails / result not usable   -> delete it            => None
   5b. refresh ok                          -> save, return the renewed session

Store is the source of truth: we never keep the session itself in memory between calls, only
the derived UserInfo. The whole load -> validate -> refresh -> save sequence runs under one
asyncio.Lock, so N concurrent callers holding a stale session trigger exactly ONE refresh;
the others wait, load the freshly saved record and see it as fresh.

Faults during resolution are ABSORBED (logged, degraded to None). A ConfigurationError during
refresh is absorbed too but keeps the record. Faults from persist() are RAISED - a login that
can't be saved must fail loudly.
"""

import asyncio
import logging

from realmlink.application.services.sessions.session_refresher import SessionRefresher
from realmlink.application.services.sessions.session_validator import is_stale, is_usable
from realmlink.domain.entities import BedrockSession, UserInfo
from realmlink.domain.exceptions import (
    ConfigurationError,
    SessionParseError,
    SessionStorageError,
    TokenRefreshException,
)
from realmlink.domain.ports import ISessionStore
from realmlink.infrastructure.observability.log_messages import LogMessages

logger = logging.getLogger(__name__)


class SessionManager:
    """Owns the session lifecycle: load, validate, refresh, persist, clear."""

    def __init__(self, store: ISessionStore, refresher: SessionRefresher) -> None:
        """Initialize the session manager.

        Args:
            store: Durable single-slot session storage
            refresher: Renews stale sessions
        """
        self._store = store
        self._refresher = refresher
        self._user_info: UserInfo | None = None
        self._lock = asyncio.Lock()

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def resolve_session(self) -> BedrockSession | None:
        """Return a ready-to-use session, refreshing it if needed, or None."""
        async with self._lock:
            return await self._resolve_locked()

    async def has_valid_session(self) -> bool:
        """True if a ready-to-use session exists (may refresh as a side effect)."""
        return await self.resolve_session() is not None

    async def get_user_info(self) -> UserInfo | None:
        """Return cached user info, or derive it from a freshly resolved session."""
        async with self._lock:
            if self._user_info is not None:
                logger.debug("Returning cached user info")
                return self._user_info

            session = await self._resolve_locked()
            if session is None:
                return None

            self._user_info = UserInfo.from_session(session)
            logger.debug("User info derived and cached")
            return self._user_info

    async def persist(self, session: BedrockSession) -> None:
        """Write a session through to the store.

        Raises:
            SessionStorageError: If the record can't be written
        """
        async with self._lock:
            await self._save(session)

    async def clear(self) -> None:
        """Delete the stored session and the cached user info. Idempotent."""
        async with self._lock:
            await self._discard()
        logger.info("Session and cached user info cleared")

    # Hey future me - this is for "the user hit refresh" moments. Unlike resolve_session it
    # refreshes even a fresh session. A transient failure (network) propagates WITHOUT
    # deleting the record - a valid session shouldn't die because Wi-Fi dropped. A refresh
    # token that's definitely dead (requires_reauth) does delete it.
    async def force_refresh(self) -> BedrockSession | None:
        """Refresh the stored session regardless of staleness.

        Returns:
            The renewed session, or None if there was nothing usable to refresh

        Raises:
            TokenRefreshException: On a transient refresh failure
        """
        async with self._lock:
            session = await self._load()
            if session is None:
                return None
            if not is_usable(session):
                logger.warning(
                    LogMessages.session_discarded(reason="Realms XSTS token missing")
                )
                await self._discard()
                return None

            try:
                refreshed = await self._refresher.refresh(session)
            except TokenRefreshException as e:
                logger.warning(
                    LogMessages.token_refresh_failed(
                        error=e.message,
                        requires_reauth=e.requires_reauth,
                        error_code=e.error_code,
                    )
                )
                if e.requires_reauth:
                    await self._discard()
                    return None
                raise

            return await self._accept_refreshed(refreshed)

    # =========================================================================
    # INTERNALS (caller holds self._lock)
    # =========================================================================

    async def _resolve_locked(self) -> BedrockSession | None:
        session = await self._load()
        if session is None:
            return None

        if not is_usable(session):
            logger.warning(LogMessages.session_discarded(reason="Realms XSTS token missing"))
            await self._discard()
            return None

        if not is_stale(session):
            return session

        logger.info("Session is expired/outdated, attempting to refresh")
        try:
            refreshed = await self._refresher.refresh(session)
        except ConfigurationError as e:
            # Not the record's fault - keep it so a fixed config can still refresh it.
            logger.error("Cannot refresh session: %s", e.message)
            self._user_info = None
            return None
        except TokenRefreshException as e:
            logger.warning(
                LogMessages.token_refresh_failed(
                    error=e.message,
                    requires_reauth=e.requires_reauth,
                    error_code=e.error_code,
                ),
                exc_info=True,
            )
            await self._discard()
            return None

        return await self._accept_refreshed(refreshed)

    async def _accept_refreshed(self, refreshed: BedrockSession) -> BedrockSession | None:
        if not is_usable(refreshed):
            logger.warning(
                LogMessages.session_discarded(
                    reason="Refreshed session missing Realms XSTS token",
                    hint="The account may have lost Realms access - log in again",
                )
            )
            await self._discard()
            return None

        try:
            await self._save(refreshed)
        except SessionStorageError as e:
            # The renewed session is still good for this call; the stale record on disk
            # just gets refreshed again next time.
            logger.error("Refreshed session could not be saved: %s", e.message)
            self._user_info = None
            return refreshed

        logger.info("Session refreshed and saved")
        return refreshed

    async def _load(self) -> BedrockSession | None:
        try:
            session = await asyncio.to_thread(self._store.load)
        except SessionParseError as e:
            logger.warning(LogMessages.session_discarded(reason=e.message), exc_info=True)
            await self._discard()
            return None
        except SessionStorageError as e:
            logger.error("Failed to load session: %s", e.message, exc_info=True)
            self._user_info = None
            return None

        if session is None:
            self._user_info = None
        return session

    async def _save(self, session: BedrockSession) -> None:
        await asyncio.to_thread(self._store.save, session)
        # Replaced session => derived info is stale even if it's the same account.
        self._user_info = None

    async def _discard(self) -> None:
        await asyncio.to_thread(self._store.delete)
        self._user_info = None
