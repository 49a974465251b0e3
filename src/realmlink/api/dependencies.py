"""Dependency injection for API endpoints."""

import logging
from typing import cast

from fastapi import HTTPException, Request

from realmlink.application.services import RealmLinkService
from realmlink.config import Settings, get_settings

logger = logging.getLogger(__name__)


# Hey future me, the service comes from APP STATE, not from a module global! It's built once in
# the lifespan (infrastructure/lifecycle.py) and attached to app.state.link_service. If it's not
# there, startup failed or the app was created without the lifespan - 503, not a crash.
# Tests put a fake on app.state directly and never run the lifespan.
def get_link_service(request: Request) -> RealmLinkService:
    """Get the RealmLinkService from app state.

    Raises:
        HTTPException: 503 if the service was not initialized
    """
    service = getattr(request.app.state, "link_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Realm link service not initialized")
    return cast(RealmLinkService, service)


def get_app_settings() -> Settings:
    """Settings as a dependency (overridable in tests via dependency_overrides)."""
    return get_settings()
