"""Tests for XboxAuthClient against a fake Microsoft/Xbox Live (httpx.MockTransport)."""

import json
import re
from datetime import timedelta
from unittest.mock import AsyncMock
from urllib.parse import parse_qs

import httpx
import pytest

from realmlink.config import XboxSettings
from realmlink.domain.entities import DeviceCodeChallenge, utc_now
from realmlink.domain.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DeviceCodeError,
    SessionParseError,
    TokenRefreshException,
)
from realmlink.infrastructure.integrations import XboxAuthClient
from realmlink.infrastructure.integrations.xbox_auth_client import _parse_xbox_time

REALMS_RP = "https://pocket.realms.minecraft.net/"
NOT_AFTER = "2099-01-01T00:00:00.1234567Z"
# Matches the UTC offset at the end of a serialized timestamp.
NAIVE_OFFSET_RE = re.compile(r'(T\d{2}:\d{2}:\d{2}(?:\.\d+)?)(?:Z|[+-]\d{2}:\d{2})"')


class FakeXboxLive:
    """Routes requests by URL and records them."""

    def __init__(self, settings: XboxSettings) -> None:
        self.settings = settings
        self.requests: list[httpx.Request] = []
        self.token_responses: list[httpx.Response] = []
        self.device_code_response = httpx.Response(
            200,
            json={
                "user_code": "ABCD-1234",
                "device_code": "dev-code",
                "verification_uri": "https://www.microsoft.com/link",
                "interval": 5,
                "expires_in": 900,
            },
        )
        self.xbox_xsts_response = httpx.Response(
            200,
            json={
                "Token": "xsts-xbox",
                "NotAfter": NOT_AFTER,
                "DisplayClaims": {"xui": [{"uhs": "uhs-1", "gtg": "Steve", "xid": "2535"}]},
            },
        )
        self.realms_xsts_response = httpx.Response(
            200,
            json={
                "Token": "xsts-realms",
                "NotAfter": NOT_AFTER,
                "DisplayClaims": {"xui": [{"uhs": "uhs-1"}]},
            },
        )
        self.user_auth_response = httpx.Response(
            200,
            json={
                "Token": "xbl-user",
                "NotAfter": NOT_AFTER,
                "DisplayClaims": {"xui": [{"uhs": "uhs-1"}]},
            },
        )

    def form(self, request: httpx.Request) -> dict[str, str]:
        return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}

    def requests_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == url]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url == self.settings.device_code_url:
            return self.device_code_response
        if url == self.settings.token_url:
            return self.token_responses.pop(0)
        if url == self.settings.user_auth_url:
            return self.user_auth_response
        if url == self.settings.xsts_url:
            rp = json.loads(request.content)["RelyingParty"]
            if rp == REALMS_RP:
                return self.realms_xsts_response
            return self.xbox_xsts_response
        return httpx.Response(404)


def msa_token_response(access: str = "msa-access", refresh: str = "msa-refresh") -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "access_token": access,
            "refresh_token": refresh,
            "expires_in": 86400,
            "user_id": "user-1",
        },
    )


@pytest.fixture
def settings() -> XboxSettings:
    return XboxSettings()


@pytest.fixture
def xbox(settings: XboxSettings) -> FakeXboxLive:
    return FakeXboxLive(settings)


@pytest.fixture
def client(settings, xbox):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(xbox))
    return XboxAuthClient(settings, realms_relying_party=REALMS_RP, http_client=http_client)


@pytest.fixture
def no_sleep(mocker) -> AsyncMock:
    return mocker.patch(
        "realmlink.infrastructure.integrations.xbox_auth_client.asyncio.sleep",
        new_callable=AsyncMock,
    )


def challenge(**overrides) -> DeviceCodeChallenge:
    values = {
        "user_code": "ABCD-1234",
        "verification_uri": "https://www.microsoft.com/link",
        "device_code": "dev-code",
        "interval": 1,
    }
    values.update(overrides)
    return DeviceCodeChallenge(**values)


class TestParseXboxTime:
    def test_seven_fraction_digits(self) -> None:
        parsed = _parse_xbox_time("2025-01-02T03:04:05.1234567Z")
        assert parsed.year == 2025
        assert parsed.microsecond == 123456
        assert parsed.utcoffset() == timedelta(0)

    def test_no_fraction(self) -> None:
        assert _parse_xbox_time("2025-01-02T03:04:05Z").second == 5


class TestDeviceCode:
    async def test_request_device_code(self, client, xbox) -> None:
        result = await client.request_device_code()

        assert result.user_code == "ABCD-1234"
        assert result.verification_uri == "https://www.microsoft.com/link"
        assert result.device_code == "dev-code"
        form = xbox.form(xbox.requests[0])
        assert form["client_id"] == "0000000048183522"
        assert form["scope"] == "service::user.auth.xboxlive.com::MBI_SSL"
        assert form["response_type"] == "device_code"

    async def test_request_device_code_rejected(self, client, xbox) -> None:
        xbox.device_code_response = httpx.Response(400, json={"error": "invalid_client"})

        with pytest.raises(DeviceCodeError) as exc_info:
            await client.request_device_code()
        assert exc_info.value.error_code == "invalid_client"

    async def test_missing_client_id_is_configuration_error(self, xbox) -> None:
        client = XboxAuthClient(
            XboxSettings(client_id=" "),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(xbox)),
        )
        with pytest.raises(ConfigurationError):
            await client.request_device_code()
        assert xbox.requests == []

    async def test_poll_builds_full_chain(self, client, xbox, no_sleep) -> None:
        xbox.token_responses = [
            httpx.Response(400, json={"error": "authorization_pending"}),
            msa_token_response(),
        ]

        session = await client.poll_device_code(challenge())

        assert session.msa.access_token == "msa-access"
        assert session.msa.refresh_token == "msa-refresh"
        assert session.user_token.token == "xbl-user"
        assert session.xbox_xsts.gamertag == "Steve"
        assert session.xbox_xsts.xuid == "2535"
        assert session.realms_xsts is not None
        assert session.realms_xsts.authorization_header == "XBL3.0 x=uhs-1;xsts-realms"
        assert no_sleep.await_count == 2

        user_auth = json.loads(xbox.requests_to(xbox.settings.user_auth_url)[0].content)
        assert user_auth["Properties"]["RpsTicket"] == "t=msa-access"

    async def test_poll_slow_down_increases_interval(self, client, xbox, no_sleep) -> None:
        xbox.token_responses = [
            httpx.Response(400, json={"error": "slow_down"}),
            msa_token_response(),
        ]

        await client.poll_device_code(challenge(interval=2))

        assert [c.args[0] for c in no_sleep.await_args_list] == [2, 7]

    async def test_poll_declined(self, client, xbox, no_sleep) -> None:
        xbox.token_responses = [httpx.Response(400, json={"error": "authorization_declined"})]

        with pytest.raises(DeviceCodeError) as exc_info:
            await client.poll_device_code(challenge())
        assert exc_info.value.error_code == "authorization_declined"

    async def test_poll_expired_challenge(self, client, xbox, no_sleep) -> None:
        expired = challenge(issued_at=utc_now() - timedelta(hours=1), expires_in=60)

        with pytest.raises(DeviceCodeError) as exc_info:
            await client.poll_device_code(expired)
        assert exc_info.value.error_code == "expired_token"
        assert xbox.requests == []

    async def test_realms_denied_yields_session_without_grant(
        self, client, xbox, no_sleep
    ) -> None:
        xbox.token_responses = [msa_token_response()]
        xbox.realms_xsts_response = httpx.Response(401, json={"XErr": 2148916233})

        session = await client.poll_device_code(challenge())

        assert session.realms_xsts is None
        assert session.xbox_xsts.gamertag == "Steve"

    async def test_xbox_xsts_denied_is_authentication_error(
        self, client, xbox, no_sleep
    ) -> None:
        xbox.token_responses = [msa_token_response()]
        xbox.xbox_xsts_response = httpx.Response(401, json={"XErr": 2148916233})

        with pytest.raises(AuthenticationError, match="no Xbox profile"):
            await client.poll_device_code(challenge())


class TestRefresh:
    async def test_fresh_msa_token_is_reused(self, client, xbox, session_factory) -> None:
        session = session_factory("old", expires_in=timedelta(hours=8))

        renewed = await client.refresh(session)

        assert xbox.requests_to(xbox.settings.token_url) == []
        assert renewed.msa == session.msa
        assert renewed.xbox_xsts.token == "xsts-xbox"

    async def test_expired_msa_token_is_refreshed(self, client, xbox, session_factory) -> None:
        session = session_factory("old", expires_in=timedelta(minutes=-1))
        xbox.token_responses = [msa_token_response(access="new-access", refresh="")]

        renewed = await client.refresh(session)

        form = xbox.form(xbox.requests_to(xbox.settings.token_url)[0])
        assert form["grant_type"] == "refresh_token"
        assert form["refresh_token"] == "msa-refresh-old"
        assert renewed.msa.access_token == "new-access"
        # Microsoft didn't rotate the refresh token -> keep the old one
        assert renewed.msa.refresh_token == "msa-refresh-old"
        assert not renewed.is_expired()

    async def test_invalid_grant_requires_reauth(self, client, xbox, session_factory) -> None:
        xbox.token_responses = [httpx.Response(400, json={"error": "invalid_grant"})]

        with pytest.raises(TokenRefreshException) as exc_info:
            await client.refresh(session_factory(expires_in=timedelta(minutes=-1)))
        assert exc_info.value.requires_reauth
        assert exc_info.value.error_code == "invalid_grant"

    async def test_server_error_surfaces_as_http_error(
        self, client, xbox, session_factory
    ) -> None:
        xbox.token_responses = [httpx.Response(503)]

        with pytest.raises(httpx.HTTPStatusError):
            await client.refresh(session_factory(expires_in=timedelta(minutes=-1)))

    async def test_xbox_rejection_becomes_refresh_exception(
        self, client, xbox, session_factory
    ) -> None:
        xbox.user_auth_response = httpx.Response(400)

        with pytest.raises(TokenRefreshException) as exc_info:
            await client.refresh(session_factory())
        assert exc_info.value.error_code == "xbox_auth_failed"

    @pytest.mark.parametrize(
        "body",
        [
            {"Token": "xsts-xbox", "NotAfter": NOT_AFTER, "DisplayClaims": {"xui": []}},
            {"Token": "xsts-xbox", "DisplayClaims": {"xui": [{"uhs": "uhs-1"}]}},
            {"Token": "xsts-xbox", "NotAfter": None, "DisplayClaims": {"xui": [{"uhs": "uhs-1"}]}},
            ["not", "an", "object"],
        ],
    )
    async def test_garbled_xsts_response_becomes_refresh_exception(
        self, client, xbox, session_factory, body
    ) -> None:
        xbox.xbox_xsts_response = httpx.Response(200, json=body)

        with pytest.raises(TokenRefreshException) as exc_info:
            await client.refresh(session_factory())
        assert exc_info.value.error_code == "xbox_auth_failed"

    async def test_garbled_user_auth_response_becomes_refresh_exception(
        self, client, xbox, session_factory
    ) -> None:
        xbox.user_auth_response = httpx.Response(200, text="<html>maintenance</html>")

        with pytest.raises(TokenRefreshException):
            await client.refresh(session_factory())


class TestCodec:
    def test_roundtrip(self, client, session_factory) -> None:
        session = session_factory("codec")
        assert client.from_json(client.to_json(session)) == session

    def test_roundtrip_without_realms(self, client, session_factory) -> None:
        session = session_factory("codec", realms=False)
        assert client.from_json(client.to_json(session)).realms_xsts is None

    @pytest.mark.parametrize("text", ["{", '{"msa": null}', '"just a string"'])
    def test_malformed(self, client, text) -> None:
        with pytest.raises(SessionParseError):
            client.from_json(text)

    def test_timestamp_without_timezone_is_malformed(self, client, session_factory) -> None:
        text = client.to_json(session_factory())
        naive = NAIVE_OFFSET_RE.sub(r'\1"', text)
        assert naive != text

        with pytest.raises(SessionParseError):
            client.from_json(naive)


async def test_close_releases_client(client) -> None:
    await client.close()
    await client.close()
