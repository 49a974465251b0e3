"""Application services."""

from realmlink.application.services.link_service import RealmLinkService
from realmlink.application.services.realms_service import RealmsService
from realmlink.application.services.sessions import (
    LoginFlow,
    SessionManager,
    SessionRefresher,
)

__all__ = [
    "LoginFlow",
    "RealmLinkService",
    "RealmsService",
    "SessionManager",
    "SessionRefresher",
]
