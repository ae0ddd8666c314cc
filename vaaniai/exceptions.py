"""
Typed errors raised by the stores and the message pipeline.

Store errors propagate to the routers unchanged and are rendered as JSON by the
exception handler registered in main.py. Pipeline errors (quota, missing
config, upstream failures) never leave the pipeline; they are converted into
bot messages there.
"""

from fastapi import status


class VaaniError(Exception):
    """Base class for all application errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Internal server error"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)

    @property
    def error_type(self) -> str:
        return type(self).__name__


class ValidationError(VaaniError):
    """Bad input shape, rejected before any mutation."""

    status_code = 422
    detail = "Invalid request"


class AuthError(VaaniError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Authentication required"


class InvalidCredentialsError(AuthError):
    """Unknown email and wrong password share this error so callers cannot tell them apart."""

    detail = "Invalid email or password"


class EmailTakenError(VaaniError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Email already registered"


class ForbiddenError(VaaniError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Forbidden"


class NotFoundError(VaaniError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class UserNotFoundError(NotFoundError):
    detail = "User not found"


class SessionNotFoundError(NotFoundError):
    """Missing session, or a session that belongs to another owner."""

    detail = "Session not found"


class SessionBusyError(VaaniError):
    status_code = status.HTTP_409_CONFLICT
    detail = "A reply is already being generated for this session"


class QuotaExceededError(VaaniError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    detail = "Message limit reached"


class ConfigMissingError(VaaniError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Completion API is not configured"


class UpstreamUnavailableError(VaaniError):
    status_code = status.HTTP_502_BAD_GATEWAY
    detail = "Completion API unavailable"

    def __init__(self, detail: str | None = None, status_code: int | None = None):
        super().__init__(detail)
        self.upstream_status = status_code
