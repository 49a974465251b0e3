"""Session entities - the credential bundle and the values derived from it.

Hey future me - everything here is FROZEN on purpose! A session is only ever replaced as a
whole (login, refresh) or destroyed (logout, failed refresh). Never patch a token in place;
build a new BedrockSession with dataclasses.replace() instead.

Chain (same order Microsoft hands them out):
    msa         -> Microsoft account OAuth token (has the refresh_token)
    user_token  -> Xbox Live user token
    xbox_xsts   -> XSTS for http://xboxlive.com (gamertag + xuid live here)
    realms_xsts -> XSTS for the Realms relying party (optional, the actual Realms grant)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum

# Bump when the record shape changes. Older records are "outdated" and get refreshed,
# which rebuilds the whole chain in the current shape.
SESSION_FORMAT_VERSION = 2

# Tokens this close to expiry count as expired - a request that starts with 10s left
# tends to fail halfway through.
STALE_MARGIN = timedelta(seconds=60)


def utc_now() -> datetime:
    """Current time, timezone-aware."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class MsaToken:
    """Microsoft account OAuth token."""

    access_token: str = field(repr=False)
    refresh_token: str = field(repr=False)
    expires_at: datetime
    user_id: str | None = None


@dataclass(frozen=True)
class XblToken:
    """Xbox Live user token."""

    token: str = field(repr=False)
    user_hash: str
    expires_at: datetime


@dataclass(frozen=True)
class XstsToken:
    """XSTS token for one relying party.

    gamertag/xuid are only sent for the http://xboxlive.com relying party.
    """

    token: str = field(repr=False)
    user_hash: str
    expires_at: datetime
    gamertag: str | None = None
    xuid: str | None = None

    @property
    def authorization_header(self) -> str:
        """Value for the Authorization header of XBL3.0-protected services."""
        return f"XBL3.0 x={self.user_hash};{self.token}"


@dataclass(frozen=True)
class BedrockSession:
    """Full authenticated session as persisted on disk."""

    msa: MsaToken
    user_token: XblToken
    xbox_xsts: XstsToken
    realms_xsts: XstsToken | None = None
    version: int = SESSION_FORMAT_VERSION

    @property
    def has_realms_access(self) -> bool:
        """True iff the Realms XSTS token is present."""
        return self.realms_xsts is not None

    @property
    def display_name(self) -> str:
        """Gamertag of the signed-in account."""
        return self.xbox_xsts.gamertag or ""

    @property
    def xuid(self) -> str:
        """Stable Xbox user id."""
        return self.xbox_xsts.xuid or ""

    def is_outdated(self) -> bool:
        """True if the record was written by an older format version."""
        return self.version < SESSION_FORMAT_VERSION

    def expiries(self) -> list[datetime]:
        """Expiry timestamps of every token in the chain."""
        expiries = [
            self.msa.expires_at,
            self.user_token.expires_at,
            self.xbox_xsts.expires_at,
        ]
        if self.realms_xsts is not None:
            expiries.append(self.realms_xsts.expires_at)
        return expiries

    def is_expired(self, now: datetime | None = None, margin: timedelta = STALE_MARGIN) -> bool:
        """True if any token in the chain expires within `margin` of `now`."""
        deadline = (now or utc_now()) + margin
        return any(expires_at <= deadline for expires_at in self.expiries())

    def is_expired_or_outdated(self, now: datetime | None = None) -> bool:
        """True if the session should be renewed before use."""
        return self.is_outdated() or self.is_expired(now)


@dataclass(frozen=True)
class UserInfo:
    """Cacheable projection of a session for display purposes. Never persisted."""

    display_name: str
    xuid: str
    has_realms_access: bool

    @classmethod
    def from_session(cls, session: BedrockSession) -> UserInfo:
        """Derive user info from a session."""
        return cls(
            display_name=session.display_name,
            xuid=session.xuid,
            has_realms_access=session.has_realms_access,
        )


@dataclass(frozen=True)
class DeviceCodeChallenge:
    """One device-code challenge - show user_code + verification_uri to the user.

    Hey future me - device_code is the SECRET half, it's what we poll with. Keep it out of
    logs and API responses (repr=False helps with the former).
    """

    user_code: str
    verification_uri: str
    device_code: str = field(repr=False)
    interval: int = 5
    expires_in: int = 900
    issued_at: datetime = field(default_factory=utc_now)

    @property
    def expires_at(self) -> datetime:
        """When Microsoft stops accepting this code."""
        return self.issued_at + timedelta(seconds=self.expires_in)


class LoginState(str, Enum):
    """States of a login attempt.

    IDLE -> AWAITING_USER_VERIFICATION -> EXCHANGING -> SUCCEEDED | FAILED | CANCELLED
    Terminal states are absorbing.
    """

    IDLE = "idle"
    AWAITING_USER_VERIFICATION = "awaiting_user_verification"
    EXCHANGING = "exchanging"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """True for SUCCEEDED, FAILED and CANCELLED."""
        return self in (LoginState.SUCCEEDED, LoginState.FAILED, LoginState.CANCELLED)
