"""Session lifecycle: validate, refresh, resolve, log in."""

from realmlink.application.services.sessions.login_flow import LoginCallback, LoginFlow
from realmlink.application.services.sessions.session_manager import SessionManager
from realmlink.application.services.sessions.session_refresher import SessionRefresher
from realmlink.application.services.sessions.session_validator import (
    is_ready,
    is_stale,
    is_usable,
)

__all__ = [
    "LoginCallback",
    "LoginFlow",
    "SessionManager",
    "SessionRefresher",
    "is_ready",
    "is_stale",
    "is_usable",
]
