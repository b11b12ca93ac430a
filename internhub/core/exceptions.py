# internhub/core/exceptions.py
"""
Error taxonomy for the notification core and the HTTP handlers that render it.

Repository operations raise these; the API layer turns them into
``{"error_code", "message", "details"}`` responses.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class Unauthenticated(AppException):
    """No resolved actor. Never retried."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class Forbidden(AppException):
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            error_code="ERR_FORBIDDEN",
            status_code=status.HTTP_403_FORBIDDEN,
        )


class NotAccessible(AppException):
    """The notification is not owned by, or not visible to, the calling actor."""

    def __init__(self, notification_id: Any = None):
        super().__init__(
            message="Notification not found or access denied",
            error_code="ERR_NOT_ACCESSIBLE",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"id": notification_id},
        )


class TransientIO(AppException):
    """A Row Store call failed. Safe to retry for idempotent operations."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        message = f"Row store call failed: {operation}"
        if cause is not None:
            message = f"{message} ({cause})"
        super().__init__(
            message=message,
            error_code="ERR_STORE_UNAVAILABLE",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"operation": operation},
        )
        self.operation = operation
        self.cause = cause


class BatchOperationError(AppException):
    """
    Some items of a batch (mark-all-read, delete-all) failed.

    Every other item was still applied. ``failed_ids`` is the subset a
    caller should retry.
    """

    def __init__(self, operation: str, failed_ids: List[str], attempted: int):
        super().__init__(
            message=f"{operation}: {len(failed_ids)} of {attempted} operations failed",
            error_code="ERR_BATCH_PARTIAL",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"operation": operation, "failed_ids": failed_ids, "attempted": attempted},
        )
        self.operation = operation
        self.failed_ids = failed_ids
        self.attempted = attempted


class Inconsistent(Exception):
    """
    A fetched row failed the owner re-validation.

    Only ever logged; the row is dropped and nothing reaches the caller.
    """

    def __init__(self, notification_id: Any, owner_id: Any, actor_id: Any):
        self.notification_id = notification_id
        self.owner_id = owner_id
        self.actor_id = actor_id
        super().__init__(
            f"notification {notification_id} belongs to {owner_id}, not {actor_id}"
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.error_code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER",
    }
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code_map.get(exc.status_code, "ERR_UNKNOWN"),
            "message": exc.detail,
            "details": {},
        },
    )
