"""Session refresh - stale session in, renewed session out."""

import logging

import httpx

from realmlink.domain.entities import BedrockSession
from realmlink.domain.exceptions import AuthenticationError, TokenRefreshException
from realmlink.domain.ports import IIdentityProvider

logger = logging.getLogger(__name__)


class SessionRefresher:
    """Exchanges a stale session for a renewed one via the identity provider.

    Hey future me - this is stateless and does NOT persist anything! The session manager
    decides whether the result is usable and whether to save it. The only job here is
    to funnel every way a refresh can fail into TokenRefreshException, so the manager has
    exactly one fault to catch.
    """

    def __init__(self, provider: IIdentityProvider) -> None:
        self._provider = provider

    async def refresh(self, session: BedrockSession) -> BedrockSession:
        """Renew a session.

        Raises:
            TokenRefreshException: On provider rejection, network failure or a garbled
                provider response
        """
        try:
            return await self._provider.refresh(session)
        except TokenRefreshException:
            raise
        except AuthenticationError as e:
            raise TokenRefreshException(
                message=f"Session refresh rejected: {e.message}",
                error_code="auth_failed",
                http_status=401,
            ) from e
        except httpx.HTTPStatusError as e:
            raise TokenRefreshException(
                message=f"Session refresh failed: HTTP {e.response.status_code}",
                error_code="http_error",
                http_status=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise TokenRefreshException(
                message=f"Session refresh failed: network error ({e.__class__.__name__})",
                error_code="network_error",
            ) from e
        except (KeyError, IndexError, TypeError, AttributeError, ValueError) as e:
            raise TokenRefreshException(
                message="Session refresh failed: unexpected provider response",
                error_code="bad_response",
            ) from e
