"""External service integrations."""

from realmlink.infrastructure.integrations.realms_client import RealmsClient
from realmlink.infrastructure.integrations.xbox_auth_client import XboxAuthClient

__all__ = ["RealmsClient", "XboxAuthClient"]
