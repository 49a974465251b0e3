"""HTTP API for realmlink.

Structure:
- routers/: endpoints (auth, realms), aggregated into `api_router` and mounted at /api
- schemas/: pydantic request/response models
- dependencies.py: pulls the RealmLinkService off app.state
- exception_handlers.py: domain exception -> HTTP status mapping
"""

from realmlink.api.exception_handlers import register_exception_handlers
from realmlink.api.routers import api_router

__all__ = ["api_router", "register_exception_handlers"]
