"""Bedrock Realms HTTP client."""

import asyncio
import logging
from typing import Any

import httpx

from realmlink.config.settings import RealmsSettings
from realmlink.domain.entities import RealmsWorld, XstsToken
from realmlink.domain.exceptions import AuthenticationError, ExternalServiceError
from realmlink.domain.ports import IRealmsClient

logger = logging.getLogger(__name__)


class RealmsClient(IRealmsClient):
    """HTTP client for the Bedrock Realms API.

    Hey future me - this client is STATELESS with respect to auth! Every method takes the
    Realms XSTS token, so there's no stale token hiding in here. RealmsService resolves a
    fresh session before each call.
    """

    # Realms answers 503 "Retry again later" while a realm boots up after join.
    JOIN_MAX_RETRIES = 3
    JOIN_DEFAULT_RETRY_DELAY = 3.0

    def __init__(
        self,
        settings: RealmsSettings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize Realms client.

        Args:
            settings: Realms endpoint and client version
            http_client: Optional pre-built client (tests)
        """
        self.settings = settings
        self._client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                timeout=self.settings.request_timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _headers(self, token: XstsToken) -> dict[str, str]:
        return {
            "Authorization": token.authorization_header,
            "Client-Version": self.settings.client_version,
            "User-Agent": self.settings.user_agent,
            "Accept": "application/json",
        }

    async def _request(
        self, method: str, path: str, token: XstsToken
    ) -> httpx.Response:
        """Send a request and translate Realms errors into domain exceptions."""
        client = await self._get_client()
        response = await client.request(method, path, headers=self._headers(token))
        self._raise_for_status(response, path)
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response, path: str) -> None:
        if not response.is_error:
            return

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Realms rejected the session token (HTTP {response.status_code})"
            )

        # Realms error bodies look like {"errorCode": 404, "errorMsg": "..."}
        detail: str | None = None
        try:
            body: Any = response.json()
            if isinstance(body, dict):
                detail = body.get("errorMsg")
        except ValueError:
            detail = response.text or None

        raise ExternalServiceError(
            f"Realms API error on {path}: HTTP {response.status_code}"
            + (f" - {detail}" if detail else ""),
            http_status=response.status_code,
        )

    async def is_available(self, token: XstsToken) -> bool:
        """Check whether Realms accepts our client version."""
        response = await self._request("GET", "/mco/client/compatible", token)
        return response.text.strip() == "COMPATIBLE"

    async def get_worlds(self, token: XstsToken) -> list[RealmsWorld]:
        """List owned and invited realms."""
        response = await self._request("GET", "/worlds", token)
        servers = response.json().get("servers", [])
        return [RealmsWorld.from_api(server) for server in servers]

    # Hey future me - same retry shape as a 429 handler, just for 503. Realms answers 503
    # while the realm server is being spun up. After JOIN_MAX_RETRIES we give up and let
    # the 503 surface as ExternalServiceError.
    async def join_world(self, token: XstsToken, world_id: int) -> str:
        """Get the address (host:port) to connect to a realm."""
        client = await self._get_client()
        path = f"/worlds/{world_id}/join"

        for attempt in range(self.JOIN_MAX_RETRIES + 1):
            response = await client.get(path, headers=self._headers(token))
            if response.status_code != 503 or attempt >= self.JOIN_MAX_RETRIES:
                break

            retry_after_str = response.headers.get("Retry-After")
            delay = (
                float(retry_after_str) if retry_after_str else self.JOIN_DEFAULT_RETRY_DELAY
            )
            logger.info(
                "Realm %s not ready (attempt %d/%d), retrying in %.1fs",
                world_id,
                attempt + 1,
                self.JOIN_MAX_RETRIES,
                delay,
            )
            await asyncio.sleep(delay)

        self._raise_for_status(response, path)
        address = response.json().get("address")
        if not address:
            raise ExternalServiceError(f"Realms join response for {world_id} has no address")
        return str(address)

    async def accept_invite(self, token: XstsToken, invite_code: str) -> RealmsWorld:
        """Accept an invite link code and return the joined realm."""
        response = await self._request(
            "POST", f"/invites/v1/link/accept/{invite_code}", token
        )
        return RealmsWorld.from_api(response.json())

    async def leave_world(self, token: XstsToken, world_id: int) -> None:
        """Leave a realm the account was invited to."""
        await self._request("DELETE", f"/invites/{world_id}", token)
