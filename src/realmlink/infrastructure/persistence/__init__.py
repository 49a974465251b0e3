"""Persistence layer."""

from realmlink.infrastructure.persistence.session_store import FileSessionStore

__all__ = ["FileSessionStore"]
