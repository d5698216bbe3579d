"""Application error taxonomy.

Services raise these; the HTTP boundary (``libs.common.error_handler``) maps
each kind to its status code and a client-safe message.
"""

from typing import Optional


class AppError(Exception):
    """Base class for errors that carry an HTTP status and a safe message."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or out-of-range input, insufficient stock, invalid enum value."""

    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(AppError):
    """Missing, invalid or expired credential."""

    status_code = 401
    default_message = "Could not validate credentials"


class AuthorizationError(AppError):
    """Authenticated, but not allowed to act on the resource."""

    status_code = 403
    default_message = "Access denied"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class InternalError(AppError):
    """Persistence or unexpected failure. Details stay in the server log."""

    status_code = 500
    default_message = "Internal server error"
