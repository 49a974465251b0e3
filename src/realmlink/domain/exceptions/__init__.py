"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing str(exception).
    # This is your base class - DON'T raise it directly! Always use a specific subclass so callers can
    # catch precisely (the session manager absorbs some faults and propagates others).
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class InvalidStateException(DomainException):
    """Raised when an object is in an invalid state for the requested operation.

    Example: calling start() on a login flow that already finished.
    """

    pass


class BusinessRuleViolation(DomainException):
    """A business rule was violated.

    HTTP Status: 400

    Example:
        raise BusinessRuleViolation("Cannot join expired realm: Survival")
    """

    pass


class ConfigurationError(DomainException):
    """Application misconfiguration.

    HTTP Status: 503 (Service Unavailable)

    Example:
        raise ConfigurationError("XBOX_CLIENT_ID is not configured")
    """

    pass


class ExternalServiceError(DomainException):
    """External service (Xbox Live, Realms) returned an error.

    HTTP Status: 502 (Bad Gateway)
    """

    def __init__(self, message: str, http_status: int | None = None) -> None:
        super().__init__(message)
        self.http_status = http_status


# =============================================================================
# Session lifecycle faults
# Hey future me - the session manager ABSORBS storage/parse/not-usable/refresh faults during
# resolution (logs them, deletes the record, returns None). They only reach callers through
# explicit calls like persist() or through the login flow's error callback.
# =============================================================================


class SessionStorageError(DomainException):
    """Reading or writing the session record failed (I/O).

    HTTP Status: 500
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class SessionParseError(DomainException):
    """The session record exists but is not a well-formed session.

    Treated exactly like "no session" by the manager - the record gets deleted.
    """

    pass


class SessionNotUsableError(DomainException):
    """Session lacks the Realms XSTS token, so it can't be used for Realms calls.

    The identity exchange itself may have succeeded - usability is stricter than
    "Microsoft said yes".
    """

    pass


class AuthenticationError(DomainException):
    """User is not authenticated or the identity provider rejected the login.

    HTTP Status: 401
    """

    pass


class DeviceCodeError(AuthenticationError):
    """Device-code request or polling failed.

    error_code is the OAuth error string when Microsoft sent one
    (expired_token, access_denied, authorization_declined, ...).
    """

    def __init__(self, message: str, error_code: str | None = None) -> None:
        super().__init__(message)
        self.error_code = error_code


class NoSessionError(AuthenticationError):
    """A Realms operation was requested but no usable session exists.

    Callers should respond the same way regardless of WHY (missing file, corrupt file,
    expired + unrefreshable, missing grant): prompt the user to log in again.
    """

    def __init__(self, message: str = "No valid session found. Please log in.") -> None:
        super().__init__(message)


class TokenRefreshException(DomainException):
    """Raised when a session refresh fails.

    Hey future me - requires_reauth tells you whether the refresh token is dead (user has to
    go through the device-code flow again) or whether it was just a network hiccup.
    """

    def __init__(
        self,
        message: str = "Session refresh failed. Please log in again.",
        error_code: str | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code  # e.g., "invalid_grant"
        self.http_status = http_status  # e.g., 400, 401

    @property
    def requires_reauth(self) -> bool:
        """Check if error requires user re-authentication."""
        return self.error_code == "invalid_grant" or self.http_status in (400, 401, 403)


class LoginCancelledError(DomainException):
    """A login attempt was cancelled by the caller. Not a failure to show the user."""

    def __init__(self, message: str = "Login cancelled") -> None:
        super().__init__(message)


__all__ = [
    # Base
    "DomainException",
    # Generic
    "EntityNotFoundException",
    "InvalidStateException",
    "BusinessRuleViolation",
    "ConfigurationError",
    "ExternalServiceError",
    # Session lifecycle
    "SessionStorageError",
    "SessionParseError",
    "SessionNotUsableError",
    "TokenRefreshException",
    # Auth
    "AuthenticationError",
    "DeviceCodeError",
    "NoSessionError",
    "LoginCancelledError",
]
