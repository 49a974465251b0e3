"""Pure predicates over a session.

usable -> has the Realms grant (independent of expiry)
stale  -> expired or written in an older record format
ready  -> usable and not stale
"""

from datetime import datetime

from realmlink.domain.entities import BedrockSession


def is_usable(session: BedrockSession) -> bool:
    """True iff the session carries the Realms XSTS token."""
    return session.has_realms_access


def is_stale(session: BedrockSession, now: datetime | None = None) -> bool:
    """True iff the session must be refreshed before use."""
    return session.is_expired_or_outdated(now)


def is_ready(session: BedrockSession, now: datetime | None = None) -> bool:
    """True iff the session can be used as-is."""
    return is_usable(session) and not is_stale(session, now)
