"""Ports (interfaces) the application layer depends on.

Hey future me - these are the seams for tests! The session manager and login flow only ever
talk to these ABCs, so tests swap in fakes without touching httpx or the filesystem.

Architecture:
    SessionManager  -> ISessionStore      (FileSessionStore)
                    -> IIdentityProvider  (XboxAuthClient, via SessionRefresher)
    LoginFlow       -> IIdentityProvider
    RealmsService   -> IRealmsClient      (RealmsClient)
"""

from abc import ABC, abstractmethod

from realmlink.domain.entities import (
    BedrockSession,
    DeviceCodeChallenge,
    RealmsWorld,
    XstsToken,
)


class ISessionCodec(ABC):
    """Serializes sessions to/from their structured text record."""

    @abstractmethod
    def to_json(self, session: BedrockSession) -> str:
        """Serialize a session to text."""
        pass

    @abstractmethod
    def from_json(self, text: str) -> BedrockSession:
        """Parse a session record.

        Raises:
            SessionParseError: If the text is not a well-formed session record
        """
        pass


class ISessionStore(ABC):
    """Single-slot durable storage for one session record.

    Pure I/O - no validation, no refresh. Implementations are synchronous; the session
    manager runs them off the event loop.
    """

    @abstractmethod
    def save(self, session: BedrockSession) -> None:
        """Overwrite the slot atomically.

        Raises:
            SessionStorageError: On I/O failure
        """
        pass

    @abstractmethod
    def load(self) -> BedrockSession | None:
        """Load the slot. None if missing or empty.

        Raises:
            SessionStorageError: On I/O failure
            SessionParseError: If the record is present but malformed
        """
        pass

    @abstractmethod
    def delete(self) -> None:
        """Remove the record. Missing record is fine; failures are logged, not raised."""
        pass


class IIdentityProvider(ISessionCodec):
    """Device-code login, refresh and session (de)serialization."""

    @abstractmethod
    async def request_device_code(self) -> DeviceCodeChallenge:
        """Ask the provider for a new device code.

        Raises:
            DeviceCodeError: If the provider refuses
            httpx.HTTPError: On network failure
        """
        pass

    @abstractmethod
    async def poll_device_code(self, challenge: DeviceCodeChallenge) -> BedrockSession:
        """Wait until the user completes the challenge, then build the session.

        The returned session may lack the Realms token - checking that is the caller's job.

        Raises:
            DeviceCodeError: If the code expires or the user declines
            httpx.HTTPError: On network failure
        """
        pass

    @abstractmethod
    async def refresh(self, session: BedrockSession) -> BedrockSession:
        """Exchange a stale session for a renewed one. Does NOT persist.

        Raises:
            TokenRefreshException: If the provider rejects the refresh
            httpx.HTTPError: On network failure
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        pass


class IRealmsClient(ABC):
    """Stateless Realms API client. Every call takes the Realms XSTS token."""

    @abstractmethod
    async def is_available(self, token: XstsToken) -> bool:
        """Check whether Realms accepts our client."""
        pass

    @abstractmethod
    async def get_worlds(self, token: XstsToken) -> list[RealmsWorld]:
        """List realms the account owns or was invited to."""
        pass

    @abstractmethod
    async def join_world(self, token: XstsToken, world_id: int) -> str:
        """Get the host:port address for a realm."""
        pass

    @abstractmethod
    async def accept_invite(self, token: XstsToken, invite_code: str) -> RealmsWorld:
        """Accept an invite link code."""
        pass

    @abstractmethod
    async def leave_world(self, token: XstsToken, world_id: int) -> None:
        """Leave a realm the account was invited to."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        pass


__all__ = [
    "IIdentityProvider",
    "IRealmsClient",
    "ISessionCodec",
    "ISessionStore",
]
