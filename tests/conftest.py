"""Shared fixtures: session factory, in-memory identity provider, file store, manager."""

import asyncio
from datetime import timedelta
from pathlib import Path

import pytest

from realmlink.application.services.sessions import SessionManager, SessionRefresher
from realmlink.config import XboxSettings
from realmlink.domain.entities import (
    SESSION_FORMAT_VERSION,
    BedrockSession,
    DeviceCodeChallenge,
    MsaToken,
    XblToken,
    XstsToken,
    utc_now,
)
from realmlink.domain.ports import IIdentityProvider
from realmlink.infrastructure.integrations import XboxAuthClient
from realmlink.infrastructure.persistence import FileSessionStore


def make_session(
    tag: str = "a",
    *,
    expires_in: timedelta = timedelta(hours=8),
    realms: bool = True,
    version: int = SESSION_FORMAT_VERSION,
    gamertag: str = "Steve",
    xuid: str = "2535400000000001",
) -> BedrockSession:
    """Build a session. `tag` ends up in every token so two sessions are distinguishable."""
    expires_at = utc_now() + expires_in
    return BedrockSession(
        msa=MsaToken(
            access_token=f"msa-access-{tag}",
            refresh_token=f"msa-refresh-{tag}",
            expires_at=expires_at,
            user_id="user-1",
        ),
        user_token=XblToken(token=f"xbl-{tag}", user_hash="uhs-1", expires_at=expires_at),
        xbox_xsts=XstsToken(
            token=f"xsts-xbox-{tag}",
            user_hash="uhs-1",
            expires_at=expires_at,
            gamertag=gamertag,
            xuid=xuid,
        ),
        realms_xsts=(
            XstsToken(token=f"xsts-realms-{tag}", user_hash="uhs-1", expires_at=expires_at)
            if realms
            else None
        ),
        version=version,
    )


class FakeIdentityProvider(IIdentityProvider):
    """Scriptable identity provider.

    Set the *_result / *_error attributes to choose the outcome. poll_device_code blocks on
    `poll_gate` until the test releases it, so tests control when the "user" finishes.
    Serialization goes through the real XboxAuthClient codec.
    """

    def __init__(self) -> None:
        self._codec = XboxAuthClient(XboxSettings())
        self.challenge = DeviceCodeChallenge(
            user_code="ABCD-1234",
            verification_uri="https://www.microsoft.com/link",
            device_code="secret-device-code",
        )
        self.request_error: Exception | None = None
        self.poll_result: BedrockSession | None = make_session("login")
        self.poll_error: Exception | None = None
        self.poll_gate = asyncio.Event()
        self.poll_gate.set()
        self.refresh_result: BedrockSession | None = make_session("refreshed")
        self.refresh_error: Exception | None = None
        self.request_calls = 0
        self.poll_calls = 0
        self.refresh_calls = 0
        self.closed = False

    def to_json(self, session: BedrockSession) -> str:
        return self._codec.to_json(session)

    def from_json(self, text: str) -> BedrockSession:
        return self._codec.from_json(text)

    async def request_device_code(self) -> DeviceCodeChallenge:
        self.request_calls += 1
        await asyncio.sleep(0)
        if self.request_error is not None:
            raise self.request_error
        return self.challenge

    async def poll_device_code(self, challenge: DeviceCodeChallenge) -> BedrockSession:
        self.poll_calls += 1
        await self.poll_gate.wait()
        if self.poll_error is not None:
            raise self.poll_error
        assert self.poll_result is not None
        return self.poll_result

    async def refresh(self, session: BedrockSession) -> BedrockSession:
        self.refresh_calls += 1
        # Yield so concurrent callers actually interleave.
        await asyncio.sleep(0)
        if self.refresh_error is not None:
            raise self.refresh_error
        assert self.refresh_result is not None
        return self.refresh_result

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def session_factory():
    """Factory for BedrockSession objects (see make_session)."""
    return make_session


@pytest.fixture
def provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def session_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "bedrock_session.json"


@pytest.fixture
def store(session_path: Path, provider: FakeIdentityProvider) -> FileSessionStore:
    return FileSessionStore(session_path, codec=provider)


@pytest.fixture
def manager(store: FileSessionStore, provider: FakeIdentityProvider) -> SessionManager:
    return SessionManager(store, SessionRefresher(provider))
