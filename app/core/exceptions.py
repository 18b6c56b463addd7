"""Application-wide exception classes and handlers.

This module provides a consistent exception hierarchy for the application
and registers global exception handlers with FastAPI. The progression engine
raises these directly; the request boundary turns them into structured
failures.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception for application errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(AppError):
    """Resource not found error (404)."""

    def __init__(self, message: str = "Resource not found", resource: str | None = None):
        details = {"resource": resource} if resource else {}
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
            details=details,
        )


class ValidationError(AppError):
    """Validation error (400)."""

    def __init__(self, message: str = "Validation failed", field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="VALIDATION_ERROR",
            details=details,
        )


class InvalidAnswerShapeError(ValidationError):
    """Submitted answer does not match the question type (400)."""

    def __init__(self, question_id: str, expected: str):
        super().__init__(
            message=f"Question {question_id} expects {expected}",
            field="answers",
        )
        self.error_code = "INVALID_ANSWER_SHAPE"
        self.details = {"question_id": question_id, "expected": expected}


class ConflictError(AppError):
    """Resource conflict error (409)."""

    def __init__(self, message: str = "Resource conflict", resource: str | None = None):
        details = {"resource": resource} if resource else {}
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="CONFLICT",
            details=details,
        )


class RetakeNotAllowedError(AppError):
    """Quiz already passed and retakes are disabled (409)."""

    def __init__(self, quiz_id: str):
        super().__init__(
            message=(
                "You have already passed this quiz and it cannot be retaken. "
                "Continue with the next video in your learning path."
            ),
            status_code=status.HTTP_409_CONFLICT,
            error_code="RETAKE_NOT_ALLOWED",
            details={"quiz_id": quiz_id},
        )


class MaxAttemptsExceededError(AppError):
    """No attempts left for the quiz (409)."""

    def __init__(self, quiz_id: str, max_attempts: int):
        super().__init__(
            message=(
                f"You have used all {max_attempts} attempts for this quiz. "
                "Contact an administrator to reset your progress."
            ),
            status_code=status.HTTP_409_CONFLICT,
            error_code="MAX_ATTEMPTS_EXCEEDED",
            details={"quiz_id": quiz_id, "max_attempts": max_attempts},
        )


class DataIntegrityError(AppError):
    """Stored data violates an invariant and needs operator attention (500).

    Details are logged but never rendered to the caller.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="DATA_INTEGRITY_ERROR",
            details=details,
        )


class UnauthorizedError(AppError):
    """Authentication required error (401)."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="UNAUTHORIZED",
        )


class ForbiddenError(AppError):
    """Access forbidden error (403)."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="FORBIDDEN",
        )


class AccessDeniedError(ForbiddenError):
    """Action on a video that is still locked for the learner (403)."""

    def __init__(self, video_id: str):
        super().__init__(
            message=(
                "This video is locked. Finish the previous video and pass its quiz "
                "to unlock it."
            )
        )
        self.error_code = "ACCESS_DENIED"
        self.details = {"video_id": video_id}


async def app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle AppError and return consistent JSON response."""
    logger.error(
        "AppException: %s (code=%s, status=%d)",
        exc.message,
        exc.error_code,
        exc.status_code,
        extra={"details": exc.details},
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": {
                "code": exc.error_code,
                "message": exc.message,
                "details": exc.details if exc.details else None,
            },
        },
    )


async def data_integrity_exception_handler(
    request: Request, exc: DataIntegrityError
) -> JSONResponse:
    """Report integrity violations as internal errors without leaking details."""
    logger.critical(
        "DataIntegrityError: %s",
        exc.message,
        extra={"details": exc.details, "path": request.url.path},
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": {
                "code": exc.error_code,
                "message": "An internal error occurred",
                "details": None,
            },
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions with a generic error response."""
    logger.exception("Unhandled exception: %s", str(exc))

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": None,
            },
        },
    )


def register_exception_handlers(app: FastAPI, *, debug: bool = False) -> None:
    """Register exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
        debug: If True, unhandled exceptions propagate with stack traces.
    """
    app.add_exception_handler(DataIntegrityError, data_integrity_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(AppError, app_exception_handler)  # type: ignore[arg-type]
    if not debug:
        app.add_exception_handler(Exception, unhandled_exception_handler)
