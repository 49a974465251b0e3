"""Xbox Live identity client: Microsoft device-code login, token refresh and the XSTS chain."""

import asyncio
import logging
import re
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from realmlink.config.settings import XboxSettings
from realmlink.domain.entities import (
    STALE_MARGIN,
    BedrockSession,
    DeviceCodeChallenge,
    MsaToken,
    XblToken,
    XstsToken,
    utc_now,
)
from realmlink.domain.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DeviceCodeError,
    SessionParseError,
    TokenRefreshException,
)
from realmlink.domain.ports import IIdentityProvider

logger = logging.getLogger(__name__)

# pydantic validates the nested stdlib dataclasses directly - no parallel schema to keep in sync.
_SESSION_ADAPTER: TypeAdapter[BedrockSession] = TypeAdapter(BedrockSession)

_FRACTION_RE = re.compile(r"^(?P<head>.*T\d{2}:\d{2}:\d{2})(?P<frac>\.\d+)?(?P<tail>.*)$")

# What indexing into a JSON body that lacks the expected shape can raise.
_GARBLED_RESPONSE_ERRORS = (KeyError, IndexError, TypeError, AttributeError, ValueError)

# XSTS XErr codes worth translating - the raw numbers mean nothing to users.
XSTS_ERRORS: dict[int, str] = {
    2148916233: "This Microsoft account has no Xbox profile",
    2148916235: "Xbox Live is not available in this account's country",
    2148916236: "Account needs adult verification (South Korea)",
    2148916237: "Account needs adult verification (South Korea)",
    2148916238: "Child account must be added to a family by an adult",
}


def _parse_xbox_time(value: str) -> datetime:
    """Parse Xbox Live timestamps ("2025-01-01T00:00:00.1234567Z" - 7 fraction digits)."""
    value = value.replace("Z", "+00:00")
    match = _FRACTION_RE.match(value)
    if match and match.group("frac"):
        value = match.group("head") + match.group("frac")[:7] + match.group("tail")
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _oauth_error(response: httpx.Response) -> str | None:
    """Extract the OAuth "error" field from a token endpoint response."""
    try:
        data = response.json()
    except ValueError:
        return None
    return data.get("error") if isinstance(data, dict) else None


class XboxAuthClient(IIdentityProvider):
    """HTTP client for the Microsoft account + Xbox Live token chain."""

    DEVICE_CODE_GRANT = "urn:ietf:params:oauth:grant-type:device_code"
    XBL_RELYING_PARTY = "http://auth.xboxlive.com"
    XBOX_LIVE_RELYING_PARTY = "http://xboxlive.com"
    # Microsoft asks clients to back off by this much on "slow_down".
    SLOW_DOWN_STEP = 5

    # Hey future me, the HTTP client is created lazily (same reason as everywhere else: it must
    # be born inside a running loop). http_client is injectable so tests can hand in an
    # httpx.AsyncClient with a MockTransport instead of patching methods.
    def __init__(
        self,
        settings: XboxSettings,
        realms_relying_party: str = "https://pocket.realms.minecraft.net/",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the Xbox Live identity client.

        Args:
            settings: Xbox Live endpoints and client id
            realms_relying_party: Relying party the Realms XSTS token is issued for
            http_client: Optional pre-built client (tests)
        """
        self._settings = settings
        self._realms_relying_party = realms_relying_party
        self._client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.request_timeout)
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "XboxAuthClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def _check_configured(self) -> None:
        if not self._settings.client_id or not self._settings.client_id.strip():
            raise ConfigurationError(
                "XBOX_CLIENT_ID is not configured. Unset it to use the default Bedrock "
                "title id, or set it to a title that allows the device-code grant."
            )

    # =========================================================================
    # SESSION RECORD (de)serialization
    # =========================================================================

    def to_json(self, session: BedrockSession) -> str:
        """Serialize a session to its JSON record."""
        return _SESSION_ADAPTER.dump_json(session).decode("utf-8")

    def from_json(self, text: str) -> BedrockSession:
        """Parse a JSON session record.

        Raises:
            SessionParseError: If the record is malformed
        """
        try:
            session = _SESSION_ADAPTER.validate_json(text)
        except ValidationError as e:
            raise SessionParseError(
                f"Malformed session record ({e.error_count()} validation errors)"
            ) from e

        # Naive timestamps can't be compared with utc_now(), so the record is unusable.
        if any(expires_at.tzinfo is None for expires_at in session.expiries()):
            raise SessionParseError("Malformed session record (timestamp without timezone)")
        return session

    # =========================================================================
    # DEVICE CODE FLOW
    # =========================================================================

    async def request_device_code(self) -> DeviceCodeChallenge:
        """Request a device code the user enters at the verification URL.

        Raises:
            ConfigurationError: If no client id is configured
            DeviceCodeError: If Microsoft rejects the request
            httpx.HTTPError: On network failure
        """
        self._check_configured()
        client = await self._get_client()

        response = await client.post(
            self._settings.device_code_url,
            data={
                "client_id": self._settings.client_id,
                "scope": self._settings.scope,
                "response_type": "device_code",
            },
        )
        if response.is_error:
            error = _oauth_error(response)
            raise DeviceCodeError(
                f"Device code request failed: {error or f'HTTP {response.status_code}'}",
                error_code=error,
            )

        data = response.json()
        challenge = DeviceCodeChallenge(
            user_code=data["user_code"],
            verification_uri=data["verification_uri"],
            device_code=data["device_code"],
            interval=int(data.get("interval", 5)),
            expires_in=int(data.get("expires_in", 900)),
        )
        logger.debug("Device code issued, expires in %ss", challenge.expires_in)
        return challenge

    # Hey future me - this is the long wait! The user is off in a browser typing the code.
    # authorization_pending = keep waiting, slow_down = we polled too fast. Anything else is
    # final. Cancellation is cooperative: the asyncio.sleep() below is where a cancelled
    # login flow actually stops.
    async def poll_device_code(self, challenge: DeviceCodeChallenge) -> BedrockSession:
        """Poll until the user completes the device-code login, then build the session.

        Raises:
            DeviceCodeError: If the code expires or the user declines
            AuthenticationError: If the Xbox Live part of the chain fails
            httpx.HTTPError: On network failure
        """
        client = await self._get_client()
        interval = challenge.interval

        while True:
            if utc_now() >= challenge.expires_at:
                raise DeviceCodeError(
                    "Device code expired before the user signed in",
                    error_code="expired_token",
                )

            await asyncio.sleep(interval)

            response = await client.post(
                self._settings.token_url,
                data={
                    "client_id": self._settings.client_id,
                    "grant_type": self.DEVICE_CODE_GRANT,
                    "device_code": challenge.device_code,
                },
            )
            if response.status_code == 200:
                msa = self._parse_msa_token(response.json())
                logger.info("Microsoft account login completed, building Xbox Live chain")
                return await self._build_session(msa)

            error = _oauth_error(response)
            if error == "authorization_pending":
                continue
            if error == "slow_down":
                interval += self.SLOW_DOWN_STEP
                logger.debug("Device code polling slowed down to %ss", interval)
                continue

            raise DeviceCodeError(
                f"Device code login failed: {error or f'HTTP {response.status_code}'}",
                error_code=error,
            )

    # =========================================================================
    # REFRESH
    # =========================================================================

    # Hey future me - the MSA token lives ~24h, the Xbox tokens ~16h. So often the MSA token
    # is still fine and we only rebuild the Xbox part. Outdated records always go through a
    # full refresh so the result is in the current format.
    async def refresh(self, session: BedrockSession) -> BedrockSession:
        """Renew a stale session. Does not persist.

        Raises:
            TokenRefreshException: If Microsoft/Xbox Live reject the refresh
            httpx.HTTPError: On network failure
        """
        self._check_configured()
        msa = session.msa
        if session.is_outdated() or msa.expires_at <= utc_now() + STALE_MARGIN:
            msa = await self._refresh_msa(msa)

        try:
            return await self._build_session(msa)
        except AuthenticationError as e:
            raise TokenRefreshException(
                message=f"Xbox Live rejected the refreshed session: {e.message}",
                error_code="xbox_auth_failed",
                http_status=401,
            ) from e

    async def _refresh_msa(self, msa: MsaToken) -> MsaToken:
        client = await self._get_client()
        response = await client.post(
            self._settings.token_url,
            data={
                "client_id": self._settings.client_id,
                "scope": self._settings.scope,
                "grant_type": "refresh_token",
                "refresh_token": msa.refresh_token,
            },
        )

        # Hey future me - check for invalid_grant BEFORE raise_for_status!
        # 400 + invalid_grant means the refresh token is dead: revoked, password changed,
        # or unused for 90 days. Only a new device-code login fixes that.
        if response.status_code == 400:
            error = _oauth_error(response)
            if error == "invalid_grant":
                raise TokenRefreshException(
                    message="Refresh token invalid or revoked. Please log in again.",
                    error_code=error,
                    http_status=400,
                )

        if response.status_code in (401, 403):
            raise TokenRefreshException(
                message="Microsoft account access denied. Please log in again.",
                error_code="access_denied",
                http_status=response.status_code,
            )

        response.raise_for_status()
        logger.debug("Microsoft account token refreshed")
        return self._parse_msa_token(response.json(), previous_refresh_token=msa.refresh_token)

    # =========================================================================
    # XBOX LIVE CHAIN
    # =========================================================================

    def _parse_msa_token(
        self, data: dict[str, Any], previous_refresh_token: str | None = None
    ) -> MsaToken:
        # Microsoft usually rotates the refresh token, but keep the old one if it doesn't.
        return MsaToken(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or previous_refresh_token or "",
            expires_at=utc_now() + timedelta(seconds=int(data.get("expires_in", 3600))),
            user_id=data.get("user_id"),
        )

    async def _build_session(self, msa: MsaToken) -> BedrockSession:
        user_token = await self._authenticate_user(msa)
        xbox_xsts = await self._authorize_xsts(user_token, self.XBOX_LIVE_RELYING_PARTY)
        if xbox_xsts is None:
            raise AuthenticationError("Xbox Live XSTS authorization failed")
        realms_xsts = await self._authorize_xsts(
            user_token, self._realms_relying_party, allow_denied=True
        )
        if realms_xsts is None:
            logger.warning("Realms XSTS authorization denied for this account")

        return BedrockSession(
            msa=msa,
            user_token=user_token,
            xbox_xsts=xbox_xsts,
            realms_xsts=realms_xsts,
        )

    async def _authenticate_user(self, msa: MsaToken) -> XblToken:
        client = await self._get_client()
        response = await client.post(
            self._settings.user_auth_url,
            json={
                "Properties": {
                    "AuthMethod": "RPS",
                    "SiteName": "user.auth.xboxlive.com",
                    "RpsTicket": f"t={msa.access_token}",
                },
                "RelyingParty": self.XBL_RELYING_PARTY,
                "TokenType": "JWT",
            },
            headers={"x-xbl-contract-version": "1", "Accept": "application/json"},
        )
        if response.is_error:
            raise AuthenticationError(
                f"Xbox Live user authentication failed: HTTP {response.status_code}"
            )

        try:
            data = response.json()
            return XblToken(
                token=data["Token"],
                user_hash=data["DisplayClaims"]["xui"][0]["uhs"],
                expires_at=_parse_xbox_time(data["NotAfter"]),
            )
        except _GARBLED_RESPONSE_ERRORS as e:
            raise AuthenticationError(
                "Xbox Live user authentication returned an unexpected response"
            ) from e

    # Hey future me - allow_denied is for the Realms relying party. A 401 there means "this
    # account can't use Realms" which is NOT a login failure at this layer: we return a session
    # without realms_xsts and let the login flow / session manager decide it's not usable.
    async def _authorize_xsts(
        self, user_token: XblToken, relying_party: str, allow_denied: bool = False
    ) -> XstsToken | None:
        client = await self._get_client()
        response = await client.post(
            self._settings.xsts_url,
            json={
                "Properties": {"SandboxId": "RETAIL", "UserTokens": [user_token.token]},
                "RelyingParty": relying_party,
                "TokenType": "JWT",
            },
            headers={"x-xbl-contract-version": "1", "Accept": "application/json"},
        )

        if response.status_code == 401:
            reason = self._xsts_error(response)
            if allow_denied:
                logger.debug("XSTS denied for %s: %s", relying_party, reason)
                return None
            raise AuthenticationError(f"XSTS authorization denied: {reason}")

        if response.is_error:
            raise AuthenticationError(
                f"XSTS authorization for {relying_party} failed: HTTP {response.status_code}"
            )

        try:
            data = response.json()
            claims = data["DisplayClaims"]["xui"][0]
            return XstsToken(
                token=data["Token"],
                user_hash=claims["uhs"],
                expires_at=_parse_xbox_time(data["NotAfter"]),
                gamertag=claims.get("gtg"),
                xuid=claims.get("xid"),
            )
        except _GARBLED_RESPONSE_ERRORS as e:
            raise AuthenticationError(
                f"XSTS authorization for {relying_party} returned an unexpected response"
            ) from e

    @staticmethod
    def _xsts_error(response: httpx.Response) -> str:
        try:
            xerr = int(response.json().get("XErr", 0))
        except (ValueError, TypeError, AttributeError):
            return "HTTP 401"
        return XSTS_ERRORS.get(xerr, f"XErr {xerr}")
