"""Tests for the LoginFlow state machine."""

import asyncio

import httpx
import pytest

from realmlink.application.services.sessions import LoginFlow
from realmlink.domain.entities import LoginState
from realmlink.domain.exceptions import (
    DeviceCodeError,
    ExternalServiceError,
    InvalidStateException,
    LoginCancelledError,
    SessionNotUsableError,
    SessionStorageError,
)
from realmlink.infrastructure.observability import get_correlation_id


class Recorder:
    """Collects callback invocations in order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []

    def on_challenge(self, challenge) -> None:
        self.events.append(("challenge", challenge))

    def on_success(self, session) -> None:
        self.events.append(("success", session))

    def on_error(self, error) -> None:
        self.events.append(("error", error))

    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.events]


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def make_flow(provider, manager, recorder):
    def _make(**overrides) -> LoginFlow:
        callbacks = {
            "on_challenge": recorder.on_challenge,
            "on_success": recorder.on_success,
            "on_error": recorder.on_error,
        }
        callbacks.update(overrides)
        return LoginFlow(provider, manager, **callbacks)

    return _make


class TestHappyPath:
    async def test_login_persists_and_reports_success(
        self, make_flow, recorder, provider, store
    ) -> None:
        flow = make_flow()
        assert flow.state is LoginState.IDLE

        flow.start()
        session = await flow.wait()

        assert session == provider.poll_result
        assert flow.state is LoginState.SUCCEEDED
        assert flow.is_done
        assert flow.session == session
        assert flow.error is None
        assert recorder.kinds() == ["challenge", "success"]

        challenge = recorder.events[0][1]
        assert challenge.user_code
        assert challenge.verification_uri.startswith("https://")
        assert store.load() == session

    async def test_persist_happens_before_success_callback(
        self, make_flow, provider, store
    ) -> None:
        seen_in_store = []

        def on_success(session) -> None:
            seen_in_store.append(store.load())

        flow = make_flow(on_success=on_success)
        flow.start()
        await flow.wait()

        assert seen_in_store == [provider.poll_result]

    async def test_async_callbacks_are_awaited(self, make_flow) -> None:
        calls = []

        async def on_challenge(challenge) -> None:
            await asyncio.sleep(0)
            calls.append("challenge")

        async def on_success(session) -> None:
            calls.append("success")

        flow = make_flow(on_challenge=on_challenge, on_success=on_success)
        flow.start()
        await flow.wait()

        assert calls == ["challenge", "success"]

    async def test_callback_exception_does_not_change_outcome(self, make_flow) -> None:
        def on_challenge(challenge) -> None:
            raise RuntimeError("UI blew up")

        flow = make_flow(on_challenge=on_challenge)
        flow.start()

        assert await flow.wait() is not None
        assert flow.state is LoginState.SUCCEEDED

    async def test_attempt_logs_under_its_own_correlation_id(self, make_flow) -> None:
        seen = []
        flow = make_flow(on_success=lambda session: seen.append(get_correlation_id()))

        flow.start()
        await flow.wait()

        assert seen == [flow.attempt_id]

    async def test_wait_for_challenge(self, make_flow, provider) -> None:
        provider.poll_gate.clear()
        flow = make_flow()
        flow.start()

        challenge = await flow.wait_for_challenge(timeout=1.0)

        assert challenge == provider.challenge
        assert flow.state is LoginState.EXCHANGING
        provider.poll_gate.set()
        await flow.wait()


class TestFailures:
    async def test_session_without_realms_access_fails(
        self, make_flow, recorder, provider, store, session_factory
    ) -> None:
        provider.poll_result = session_factory("no-realms", realms=False)
        flow = make_flow()

        flow.start()
        assert await flow.wait() is None

        assert flow.state is LoginState.FAILED
        assert isinstance(flow.error, SessionNotUsableError)
        assert recorder.kinds() == ["challenge", "error"]
        assert not store.exists()

    async def test_provider_error_fails(self, make_flow, recorder, provider) -> None:
        provider.poll_error = DeviceCodeError("declined", error_code="authorization_declined")
        flow = make_flow()

        flow.start()
        await flow.wait()

        assert flow.state is LoginState.FAILED
        assert recorder.events[-1] == ("error", provider.poll_error)

    async def test_device_code_request_error_skips_challenge(
        self, make_flow, recorder, provider
    ) -> None:
        provider.request_error = DeviceCodeError("invalid client", error_code="invalid_client")
        flow = make_flow()

        flow.start()
        assert await flow.wait_for_challenge(timeout=1.0) is None
        await flow.wait()

        assert flow.state is LoginState.FAILED
        assert recorder.kinds() == ["error"]

    async def test_network_error_becomes_external_service_error(
        self, make_flow, provider
    ) -> None:
        provider.poll_error = httpx.ConnectError("offline")
        flow = make_flow()

        flow.start()
        await flow.wait()

        assert flow.state is LoginState.FAILED
        assert isinstance(flow.error, ExternalServiceError)

    async def test_persist_failure_reports_failed_not_succeeded(
        self, make_flow, recorder, store, mocker
    ) -> None:
        mocker.patch.object(store, "save", side_effect=SessionStorageError("read-only"))
        flow = make_flow()

        flow.start()
        assert await flow.wait() is None

        assert flow.state is LoginState.FAILED
        assert isinstance(flow.error, SessionStorageError)
        assert "success" not in recorder.kinds()


class TestCancellation:
    async def test_cancel_before_completion_delivers_nothing(
        self, make_flow, recorder, provider, store
    ) -> None:
        provider.poll_gate.clear()
        flow = make_flow()
        flow.start()
        await flow.wait_for_challenge(timeout=1.0)

        assert flow.cancel() is True
        # Provider "completes" after the cancel - must not leak through.
        provider.poll_gate.set()
        assert await flow.wait() is None
        await asyncio.sleep(0)

        assert flow.state is LoginState.CANCELLED
        assert isinstance(flow.error, LoginCancelledError)
        assert recorder.kinds() == ["challenge"]
        assert not store.exists()

    async def test_cancel_immediately_after_start(self, make_flow, recorder, provider) -> None:
        flow = make_flow()
        flow.start()
        flow.cancel()

        assert await flow.wait() is None
        assert flow.state is LoginState.CANCELLED
        assert recorder.events == []
        assert provider.poll_calls == 0

    async def test_cancel_wins_over_queued_failure(
        self, make_flow, recorder, provider
    ) -> None:
        provider.poll_gate.clear()
        provider.poll_error = DeviceCodeError("expired", error_code="expired_token")
        flow = make_flow()
        flow.start()
        await flow.wait_for_challenge(timeout=1.0)

        provider.poll_gate.set()  # failure is now ready to be delivered
        flow.cancel()
        await flow.wait()
        await asyncio.sleep(0)

        assert flow.state is LoginState.CANCELLED
        assert "error" not in recorder.kinds()

    async def test_cancel_from_challenge_callback(self, make_flow, recorder) -> None:
        holder: dict[str, LoginFlow] = {}

        def on_challenge(challenge) -> None:
            holder["flow"].cancel()

        flow = make_flow(on_challenge=on_challenge)
        holder["flow"] = flow
        flow.start()

        assert await flow.wait() is None
        assert flow.state is LoginState.CANCELLED
        assert recorder.events == []

    async def test_cancel_after_success_is_noop(self, make_flow, recorder) -> None:
        flow = make_flow()
        flow.start()
        await flow.wait()

        assert flow.cancel() is False
        assert flow.state is LoginState.SUCCEEDED
        assert recorder.kinds() == ["challenge", "success"]


class TestStateGuards:
    async def test_start_twice_raises(self, make_flow) -> None:
        flow = make_flow()
        flow.start()

        with pytest.raises(InvalidStateException):
            flow.start()
        await flow.wait()

    async def test_start_after_cancel_raises(self, make_flow) -> None:
        flow = make_flow()
        flow.cancel()

        with pytest.raises(InvalidStateException):
            flow.start()

    async def test_wait_before_start_raises(self, make_flow) -> None:
        with pytest.raises(InvalidStateException):
            await make_flow().wait()

    async def test_attempt_ids_are_unique(self, make_flow) -> None:
        assert make_flow().attempt_id != make_flow().attempt_id
