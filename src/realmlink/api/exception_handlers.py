"""Custom exception handlers for the FastAPI application.

Converts domain exceptions into HTTP responses. Every body is {"detail": message}.

Hey future me - Starlette picks the handler by walking the exception's MRO, so the most
specific registration wins: NoSessionError and DeviceCodeError land in the
AuthenticationError handler, anything else derived from DomainException falls through to
the 500 catch-all at the bottom.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from realmlink.domain.exceptions import (
    AuthenticationError,
    BusinessRuleViolation,
    ConfigurationError,
    DomainException,
    EntityNotFoundException,
    ExternalServiceError,
    InvalidStateException,
    SessionStorageError,
    TokenRefreshException,
)

logger = logging.getLogger(__name__)


def _detail(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": message})


def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for domain exceptions.

    Mapping:
        AuthenticationError (incl. NoSessionError), TokenRefreshException -> 401
        EntityNotFoundException -> 404
        InvalidStateException -> 409
        BusinessRuleViolation -> 400
        ExternalServiceError -> 502
        ConfigurationError -> 503
        SessionStorageError, other DomainException -> 500
    """

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        """Handle missing/rejected sessions with 401 Unauthorized."""
        logger.info(
            "Not authenticated at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "error": exc.message},
        )
        return _detail(status.HTTP_401_UNAUTHORIZED, exc.message)

    @app.exception_handler(TokenRefreshException)
    async def token_refresh_exception_handler(
        request: Request, exc: TokenRefreshException
    ) -> JSONResponse:
        """Handle failed session refresh with 401 Unauthorized."""
        logger.warning(
            "Session refresh failed at %s: %s",
            request.url.path,
            exc.message,
            extra={
                "path": request.url.path,
                "error_code": exc.error_code,
                "requires_reauth": exc.requires_reauth,
            },
        )
        return _detail(status.HTTP_401_UNAUTHORIZED, exc.message)

    @app.exception_handler(EntityNotFoundException)
    async def entity_not_found_exception_handler(
        request: Request, exc: EntityNotFoundException
    ) -> JSONResponse:
        """Handle entity not found exceptions with 404 Not Found."""
        logger.info(
            "Entity not found at %s: %s %s",
            request.url.path,
            exc.entity_type,
            exc.entity_id,
            extra={
                "path": request.url.path,
                "entity_type": exc.entity_type,
                "entity_id": exc.entity_id,
            },
        )
        return _detail(status.HTTP_404_NOT_FOUND, exc.message)

    @app.exception_handler(InvalidStateException)
    async def invalid_state_exception_handler(
        request: Request, exc: InvalidStateException
    ) -> JSONResponse:
        """Handle invalid state exceptions with 409 Conflict."""
        logger.warning("Invalid state at %s: %s", request.url.path, exc.message)
        return _detail(status.HTTP_409_CONFLICT, exc.message)

    @app.exception_handler(BusinessRuleViolation)
    async def business_rule_violation_handler(
        request: Request, exc: BusinessRuleViolation
    ) -> JSONResponse:
        """Handle business rule violations with 400 Bad Request."""
        logger.warning("Business rule violation at %s: %s", request.url.path, exc.message)
        return _detail(status.HTTP_400_BAD_REQUEST, exc.message)

    @app.exception_handler(ExternalServiceError)
    async def external_service_error_handler(
        request: Request, exc: ExternalServiceError
    ) -> JSONResponse:
        """Handle upstream (Realms/Xbox Live) errors with 502 Bad Gateway."""
        logger.error(
            "External service error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "upstream_status": exc.http_status},
        )
        return _detail(status.HTTP_502_BAD_GATEWAY, exc.message)

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        """Handle configuration errors with 503 Service Unavailable."""
        logger.error("Configuration error at %s: %s", request.url.path, exc.message)
        return _detail(status.HTTP_503_SERVICE_UNAVAILABLE, exc.message)

    @app.exception_handler(SessionStorageError)
    async def session_storage_error_handler(
        request: Request, exc: SessionStorageError
    ) -> JSONResponse:
        """Handle session file I/O failures with 500 Internal Server Error."""
        logger.error(
            "Session storage error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "session_path": exc.path},
        )
        return _detail(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.message)

    @app.exception_handler(DomainException)
    async def domain_exception_handler(
        request: Request, exc: DomainException
    ) -> JSONResponse:
        """Catch-all for domain exceptions without a dedicated handler."""
        logger.error(
            "Unhandled %s at %s: %s",
            exc.__class__.__name__,
            request.url.path,
            exc.message,
        )
        return _detail(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.message)
