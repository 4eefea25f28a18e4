"""Application error types.

Every ``AppError`` carries the HTTP status it maps to; ``main.py`` renders them
as ``{"status": ..., "detail": ...}`` JSON responses.
"""


class AppError(Exception):
    """Base error surfaced to API clients."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(AppError):
    """Malformed input or a missing required field."""

    status_code = 400


class Unauthenticated(AppError):
    """Missing, invalid, expired or stale credentials."""

    status_code = 401


class Forbidden(AppError):
    """Authenticated, but the role is not permitted."""

    status_code = 403


class NotFound(AppError):
    status_code = 404


class InvalidOrExpiredToken(AppError):
    """Password reset token does not match or has expired."""

    status_code = 400


class EmailDeliveryFailed(AppError):
    status_code = 500


class InvalidTokenError(Exception):
    """Raised by the token service when a bearer token cannot be trusted."""


class DeliveryError(Exception):
    """Raised by a notification sender when a message could not be delivered."""
