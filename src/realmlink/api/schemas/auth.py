"""API schemas for authentication and login attempts."""

from pydantic import BaseModel, Field

from realmlink.application.services.sessions import LoginFlow
from realmlink.domain.entities import LoginState, UserInfo


class UserInfoResponse(BaseModel):
    """Signed-in Xbox account."""

    display_name: str = Field(..., description="Gamertag")
    xuid: str = Field(..., description="Xbox user id")
    has_realms_access: bool = Field(..., description="Account holds a Realms token")

    @classmethod
    def from_entity(cls, info: UserInfo) -> "UserInfoResponse":
        return cls(
            display_name=info.display_name,
            xuid=info.xuid,
            has_realms_access=info.has_realms_access,
        )


class AuthStatusResponse(BaseModel):
    """Response for GET /auth/status."""

    authenticated: bool = Field(..., description="A usable session exists")
    user: UserInfoResponse | None = Field(default=None, description="Signed-in account")


# Hey future me - device_code is deliberately NOT in here! user_code + verification_uri are
# what the user needs; the device_code is what WE poll with and must stay server-side.
class LoginAttemptResponse(BaseModel):
    """State of one device-code login attempt."""

    attempt_id: str = Field(..., description="Login attempt id (also the log correlation id)")
    state: LoginState = Field(..., description="Current attempt state")
    user_code: str | None = Field(default=None, description="Code to enter at verification_uri")
    verification_uri: str | None = Field(default=None, description="Where to enter the code")
    expires_in: int | None = Field(default=None, description="Seconds the code stays valid")
    error: str | None = Field(default=None, description="Why the attempt failed")

    @classmethod
    def from_flow(cls, flow: LoginFlow) -> "LoginAttemptResponse":
        challenge = flow.challenge
        return cls(
            attempt_id=flow.attempt_id,
            state=flow.state,
            user_code=challenge.user_code if challenge else None,
            verification_uri=challenge.verification_uri if challenge else None,
            expires_in=challenge.expires_in if challenge else None,
            error=(
                flow.error.message
                if flow.error is not None and flow.state is LoginState.FAILED
                else None
            ),
        )


class MessageResponse(BaseModel):
    """Generic acknowledgement."""

    message: str
