"""FastAPI application entry point."""

import uvicorn
from fastapi import FastAPI

from realmlink import __version__
from realmlink.api import api_router, register_exception_handlers
from realmlink.api.routers import health
from realmlink.config import get_settings
from realmlink.infrastructure.lifecycle import lifespan


def create_app() -> FastAPI:
    """Build the FastAPI app. The object graph is wired later, in the lifespan."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="Xbox Live device-code login and Bedrock Realms access",
        lifespan=lifespan,
    )
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")
    app.include_router(health.router, prefix="/health", tags=["Health"])
    return app


app = create_app()


def run() -> None:
    """Console entry point (`realmlink`)."""
    settings = get_settings()
    uvicorn.run(
        "realmlink.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # configure_logging() owns the handlers
    )
