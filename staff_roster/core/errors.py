"""Application error taxonomy.

Every failure that reaches a client is an ``AppError`` subclass. The
exception handlers registered in ``main.py`` render them into the
``{"success": false, "error": {...}}`` envelope, so route handlers and
services simply raise.

Finer-grained causes (e.g. ``INVALID_WEEKOFF_DAYS``) travel in
``details["reason"]``; ``code`` is always one of the six categories below.
"""

from typing import Any, Optional

from fastapi import status


class ErrorCode:
    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    OPERATION_IN_PROGRESS = "OPERATION_IN_PROGRESS"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppError(Exception):
    """Base exception for the roster API."""

    code: str = ErrorCode.INTERNAL_ERROR
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        reason: Optional[str] = None,
    ):
        self.message = message
        self.details = dict(details or {})
        if reason:
            self.details["reason"] = reason
        super().__init__(message)


class UnauthorizedError(AppError):
    """Missing, invalid or expired session."""

    code = ErrorCode.UNAUTHORIZED
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDeniedError(AppError):
    """Authenticated, but the action is not allowed."""

    code = ErrorCode.PERMISSION_DENIED
    status_code = status.HTTP_403_FORBIDDEN


class ValidationFailedError(AppError):
    """Malformed or out-of-range input."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(AppError):
    code = ErrorCode.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND


class OperationInProgressError(AppError):
    code = ErrorCode.OPERATION_IN_PROGRESS
    status_code = status.HTTP_409_CONFLICT


class InternalError(AppError):
    code = ErrorCode.INTERNAL_ERROR
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# HTTP status -> category, for HTTPExceptions raised by FastAPI/Starlette itself
STATUS_CODE_MAP = {
    status.HTTP_400_BAD_REQUEST: ErrorCode.VALIDATION_ERROR,
    status.HTTP_401_UNAUTHORIZED: ErrorCode.UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ErrorCode.PERMISSION_DENIED,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorCode.NOT_FOUND,
    status.HTTP_409_CONFLICT: ErrorCode.OPERATION_IN_PROGRESS,
    422: ErrorCode.VALIDATION_ERROR,
}
