"""Application lifecycle - builds the object graph at startup, tears it down at shutdown."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from realmlink.application.services import (
    RealmLinkService,
    RealmsService,
    SessionManager,
    SessionRefresher,
)
from realmlink.config import Settings, get_settings
from realmlink.domain.exceptions import ConfigurationError
from realmlink.infrastructure.integrations import RealmsClient, XboxAuthClient
from realmlink.infrastructure.observability import configure_logging
from realmlink.infrastructure.persistence import FileSessionStore

logger = logging.getLogger(__name__)


def _ensure_data_dir(settings: Settings) -> None:
    try:
        settings.storage.data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to create data directory '{settings.storage.data_dir}': {exc}. "
            "Set STORAGE_DATA_DIR to a writable directory."
        ) from exc


# Hey future me, this is the ONLY place the object graph gets built! One SessionManager per
# process (it owns the refresh lock and the UserInfo cache), shared by the login flow and the
# Realms service. The XboxAuthClient plays two roles: identity provider AND session codec for
# the file store.
def build_link_service(settings: Settings) -> RealmLinkService:
    """Wire store, clients and services together."""
    provider = XboxAuthClient(settings.xbox, realms_relying_party=settings.realms.relying_party)
    store = FileSessionStore(settings.storage.session_path, codec=provider)
    session_manager = SessionManager(store, SessionRefresher(provider))
    realms_client = RealmsClient(settings.realms)
    return RealmLinkService(
        session_manager,
        provider,
        RealmsService(session_manager, realms_client),
        realms_client=realms_client,
    )


# Listen future me, @asynccontextmanager makes this the FastAPI lifespan! Before `yield` is
# startup, after is shutdown. The finally block runs even if startup blew up halfway.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup: logging, data directory, RealmLinkService on app.state.
    Shutdown: cancel a running login, close HTTP clients.
    """
    settings = get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    link_service: RealmLinkService | None = None
    try:
        _ensure_data_dir(settings)
        logger.info("Session file: %s", settings.storage.session_path)

        link_service = build_link_service(settings)
        app.state.link_service = link_service

        if await link_service.has_valid_session():
            logger.info("Stored session is valid")
        else:
            logger.info("No valid session stored - log in via POST /api/auth/login")

        yield

    except Exception as e:
        logger.exception("Error during application startup: %s", e)
        raise
    finally:
        logger.info("Shutting down application")
        if link_service is not None:
            try:
                await link_service.close()
                logger.info("HTTP clients closed")
            except Exception as e:
                logger.exception("Error closing realm link service: %s", e)
        app.state.link_service = None
