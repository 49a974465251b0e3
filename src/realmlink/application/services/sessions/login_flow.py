"""Device-code login attempt as an explicit state machine.

    IDLE -> AWAITING_USER_VERIFICATION -> EXCHANGING -> SUCCEEDED | FAILED | CANCELLED

Hey future me - the whole point of this class is the cancel-vs-completion race! The old way
(fire callbacks from the background task, hope task.cancel() lands first) lets a failure
notification sneak out after the user already hit cancel. Here every terminal state goes
through _transition(), a compare-and-set with no await between check and set. On a single
event loop that IS atomic: whoever wins delivers their notification, everybody else is a
no-op. Exactly one terminal notification per attempt, except CANCELLED which delivers none.
"""

import asyncio
import inspect
import logging
import uuid
from collections.abc import Callable
from typing import Any

import httpx

from realmlink.application.services.sessions.session_manager import SessionManager
from realmlink.application.services.sessions.session_validator import is_usable
from realmlink.domain.entities import BedrockSession, DeviceCodeChallenge, LoginState
from realmlink.domain.exceptions import (
    AuthenticationError,
    DomainException,
    ExternalServiceError,
    InvalidStateException,
    LoginCancelledError,
    SessionNotUsableError,
)
from realmlink.domain.ports import IIdentityProvider
from realmlink.infrastructure.observability.log_messages import LogMessages
from realmlink.infrastructure.observability.logging import set_correlation_id

logger = logging.getLogger(__name__)

# Plain callable or coroutine function, we await whatever comes back if it's awaitable.
LoginCallback = Callable[[Any], Any]


class LoginFlow:
    """One device-code login attempt.

    Usage:
        flow = LoginFlow(provider, session_manager, on_challenge=show_code)
        flow.start()
        session = await flow.wait()  # None unless SUCCEEDED

    Ordering:
        on_challenge always fires before any terminal callback.
        The session is persisted BEFORE on_success fires; a failed persist means FAILED.
    """

    def __init__(
        self,
        provider: IIdentityProvider,
        session_manager: SessionManager,
        on_challenge: LoginCallback | None = None,
        on_success: LoginCallback | None = None,
        on_error: LoginCallback | None = None,
    ) -> None:
        self._provider = provider
        self._session_manager = session_manager
        self._on_challenge = on_challenge
        self._on_success = on_success
        self._on_error = on_error

        self.attempt_id = uuid.uuid4().hex[:12]
        self._state = LoginState.IDLE
        self._challenge: DeviceCodeChallenge | None = None
        self._session: BedrockSession | None = None
        self._error: DomainException | None = None
        self._task: asyncio.Task[None] | None = None
        self._challenge_ready = asyncio.Event()
        self._done = asyncio.Event()

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> LoginState:
        return self._state

    @property
    def challenge(self) -> DeviceCodeChallenge | None:
        return self._challenge

    @property
    def session(self) -> BedrockSession | None:
        """The new session, only set once SUCCEEDED."""
        return self._session

    @property
    def error(self) -> DomainException | None:
        """Why the attempt FAILED (or LoginCancelledError when CANCELLED)."""
        return self._error

    @property
    def is_done(self) -> bool:
        return self._state.is_terminal

    # =========================================================================
    # CONTROL
    # =========================================================================

    def start(self) -> None:
        """Schedule the attempt on the running loop and return immediately.

        Raises:
            InvalidStateException: If this flow was already started or cancelled
        """
        if self._state is not LoginState.IDLE:
            raise InvalidStateException(
                f"Login attempt {self.attempt_id} already {self._state.value}"
            )
        self._state = LoginState.AWAITING_USER_VERIFICATION
        self._task = asyncio.create_task(self._run(), name=f"login-{self.attempt_id}")
        logger.info("Login attempt %s started", self.attempt_id)

    def cancel(self) -> bool:
        """Cancel the attempt. Returns False if it had already finished.

        Suppresses any later success/failure notification. A notification that was already
        delivered is not taken back.
        """
        if not self._transition(LoginState.CANCELLED, error=LoginCancelledError()):
            return False

        logger.info("Login attempt %s cancelled", self.attempt_id)
        if self._task is not None and not self._task.done():
            self._task.cancel()
        return True

    async def wait(self) -> BedrockSession | None:
        """Suspend until the attempt is terminal. Returns the session on success, else None.

        Raises:
            InvalidStateException: If the flow was never started
        """
        if self._state is LoginState.IDLE:
            raise InvalidStateException(f"Login attempt {self.attempt_id} was never started")
        await self._done.wait()
        return self._session if self._state is LoginState.SUCCEEDED else None

    async def wait_for_challenge(self, timeout: float | None = None) -> DeviceCodeChallenge | None:
        """Suspend until the device code is known (or the attempt ended early).

        Returns None if the attempt ended before a challenge was issued or on timeout.
        """
        try:
            await asyncio.wait_for(self._challenge_ready.wait(), timeout)
        except TimeoutError:
            logger.warning(
                "Login attempt %s: no device code after %.1fs", self.attempt_id, timeout or 0
            )
        return self._challenge

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _transition(
        self,
        target: LoginState,
        *,
        session: BedrockSession | None = None,
        error: DomainException | None = None,
    ) -> bool:
        # Compare-and-set. NO await in here, ever.
        if self._state.is_terminal:
            return False
        self._state = target
        self._session = session
        self._error = error
        self._challenge_ready.set()
        self._done.set()
        return True

    async def _run(self) -> None:
        # Task runs in a copy of the caller's context, so this doesn't leak out.
        set_correlation_id(self.attempt_id)
        try:
            challenge = await self._provider.request_device_code()
            if self.is_done:
                return

            self._challenge = challenge
            self._challenge_ready.set()
            logger.info(
                LogMessages.login_code_issued(
                    user_code=challenge.user_code,
                    verification_uri=challenge.verification_uri,
                    expires_in=challenge.expires_in,
                )
            )
            await self._notify(self._on_challenge, challenge)
            if self.is_done:
                return

            self._state = LoginState.EXCHANGING
            session = await self._provider.poll_device_code(challenge)
            if not is_usable(session):
                raise SessionNotUsableError(
                    "Login succeeded but the account has no Realms access (Realms XSTS token missing)"
                )
            if self.is_done:
                return

            # Store first, THEN report success.
            await self._session_manager.persist(session)
            if self._transition(LoginState.SUCCEEDED, session=session):
                logger.info("Login attempt %s succeeded", self.attempt_id)
                await self._notify(self._on_success, session)

        except asyncio.CancelledError:
            # cancel() already moved us to CANCELLED; anything else (shutdown) lands here too.
            self._transition(LoginState.CANCELLED, error=LoginCancelledError())
            raise
        except DomainException as e:
            await self._fail(e)
        except httpx.HTTPError as e:
            await self._fail(
                ExternalServiceError(f"Network error during login: {e.__class__.__name__}")
            )
        except Exception as e:
            logger.exception("Unexpected error in login attempt %s", self.attempt_id)
            await self._fail(AuthenticationError(f"Login failed unexpectedly: {e}"))

    async def _fail(self, error: DomainException) -> None:
        failed_in = self._state
        if not self._transition(LoginState.FAILED, error=error):
            logger.debug(
                "Login attempt %s: dropping failure after %s", self.attempt_id, self._state.value
            )
            return

        logger.error(LogMessages.login_failed(error=error.message, state=failed_in.value))
        await self._notify(self._on_error, error)

    async def _notify(self, callback: LoginCallback | None, payload: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(payload)
            if inspect.isawaitable(result):
                await result
        except Exception:
            # Callbacks don't get to change the outcome of the attempt.
            logger.exception(
                "Login callback %s raised",
                getattr(callback, "__name__", repr(callback)),
            )
