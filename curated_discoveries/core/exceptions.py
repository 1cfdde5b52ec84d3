"""
Error taxonomy for the CuratedDiscoveries backend.

Every failure that reaches a client is one of a closed set of categories.
Backend (PostgREST / Supabase Auth) error text is logged where it happens and
replaced with a stable user-facing message, so database internals never leak
into responses.

- `CuratedError` is the base class: a message, an error code and a details
  dict that is safe to return to clients.
- `map_remote_error` turns a PostgREST `APIError` into one of the categories.
- `to_http_exception` renders any `CuratedError` as a FastAPI `HTTPException`.
"""

import logging
from typing import Optional, Dict, Any

from fastapi import HTTPException
from postgrest.exceptions import APIError

logger = logging.getLogger(__name__)


class CuratedError(Exception):
    """Base exception class for CuratedDiscoveries"""

    status_code = 500

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(CuratedError):
    """Raised when input fails local validation, before any network call"""

    status_code = 400

    def __init__(self, field: str, reason: str):
        super().__init__(reason, "VALIDATION_ERROR", {"field": field})
        self.field = field


class AuthError(CuratedError):
    """Raised when credentials are rejected"""

    status_code = 401

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, "AUTH_ERROR")


class UnauthenticatedError(CuratedError):
    """Raised when an operation needs a signed-in user and there is none"""

    status_code = 401

    def __init__(self, action: str = "perform this action"):
        super().__init__(f"Please log in to {action}", "UNAUTHENTICATED", {"action": action})


class PermissionDeniedError(CuratedError):
    status_code = 403

    def __init__(self, message: str = "You do not have permission to do that"):
        super().__init__(message, "PERMISSION_DENIED")


class NotFoundError(CuratedError):
    status_code = 404

    def __init__(self, resource: str, identifier: Optional[str] = None):
        details = {"resource": resource}
        if identifier is not None:
            details["id"] = identifier
        super().__init__(f"{resource} not found", "NOT_FOUND", details)
        self.resource = resource


class ConflictError(CuratedError):
    status_code = 409

    def __init__(self, message: str = "That already exists", field: Optional[str] = None):
        super().__init__(message, "CONFLICT", {"field": field} if field else {})


class RemoteServiceError(CuratedError):
    """Raised when the backend fails in a way the user cannot fix"""

    status_code = 502

    def __init__(self, operation: str):
        super().__init__(
            "Something went wrong, please try again",
            "REMOTE_SERVICE_ERROR",
            {"operation": operation},
        )
        self.operation = operation


# PostgREST / Postgres error codes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
NO_ROWS = "PGRST116"
INSUFFICIENT_PRIVILEGE = "42501"
JWT_ERROR = "PGRST301"


def map_remote_error(exc: Exception, operation: str, resource: str = "Record") -> CuratedError:
    """Map a backend exception to a user-facing category.

    The raw backend message is logged here and not carried on the result.
    """
    if isinstance(exc, CuratedError):
        return exc
    code = getattr(exc, "code", None) if isinstance(exc, APIError) else None
    logger.warning(f"Remote error during {operation}: code={code} error={exc}")
    if code == UNIQUE_VIOLATION:
        return ConflictError(f"{resource} already exists")
    if code in (FOREIGN_KEY_VIOLATION, NO_ROWS):
        return NotFoundError(resource)
    if code in (INSUFFICIENT_PRIVILEGE, JWT_ERROR):
        return PermissionDeniedError()
    return RemoteServiceError(operation)


def to_http_exception(exc: CuratedError) -> HTTPException:
    """Convert CuratedError to FastAPI HTTPException"""
    return HTTPException(
        status_code=exc.status_code,
        detail={
            "error": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )
