"""Domain entities."""

from realmlink.domain.entities.realms import RealmsWorld
from realmlink.domain.entities.session import (
    SESSION_FORMAT_VERSION,
    STALE_MARGIN,
    BedrockSession,
    DeviceCodeChallenge,
    LoginState,
    MsaToken,
    UserInfo,
    XblToken,
    XstsToken,
    utc_now,
)

__all__ = [
    "SESSION_FORMAT_VERSION",
    "STALE_MARGIN",
    "BedrockSession",
    "DeviceCodeChallenge",
    "LoginState",
    "MsaToken",
    "RealmsWorld",
    "UserInfo",
    "XblToken",
    "XstsToken",
    "utc_now",
]
