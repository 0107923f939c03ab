"""Domain exception hierarchy for structured error responses."""

from __future__ import annotations


class AppException(Exception):
    """Base exception for all domain errors.

    Subclasses set ``code`` and ``status_code`` at the class level; callers
    provide ``message`` and an optional ``details`` list.
    """

    code: str = "APP_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundException(AppException):
    code = "NOT_FOUND"
    status_code = 404


class ForbiddenException(AppException):
    code = "FORBIDDEN"
    status_code = 403


class UnauthorizedException(AppException):
    code = "UNAUTHORIZED"
    status_code = 401


class ValidationException(AppException):
    code = "VALIDATION_ERROR"
    status_code = 422


class InvalidCursorException(AppException):
    code = "INVALID_CURSOR"
    status_code = 400


class QuotaExceededException(AppException):
    code = "QUOTA_EXCEEDED"
    status_code = 429


class GenerationFailure(Exception):
    """The generation provider errored, timed out or returned nothing usable.

    Recovered inside the reply pipeline; never surfaces to an HTTP caller.
    """


class NotificationDeliveryFailure(Exception):
    """A push notification could not be delivered. Logged only."""
