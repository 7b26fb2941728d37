"""
Typed API exceptions with machine-readable error codes.

Every failure a service can report maps to one of these classes. They extend
FastAPI's HTTPException, so a router never has to translate them: the
application-level handler renders them with ``error_response``.

Error kinds:
    Unauthenticated   -> UnauthorizedException    (401)
    PermissionDenied  -> ForbiddenException       (403)
    NotFound          -> NotFoundException        (404)
    Conflict          -> ConflictException        (409)
    InvalidState      -> InvalidStateException    (409)
    Validation        -> ValidationException      (422)
    TransientStore    -> TransientStoreException  (503, retryable)

Example:
    from common.utils import NotFoundException

    circle = await circles.find_one({"_id": ObjectId(circle_id)})
    if not circle:
        raise NotFoundException("Circle not found", code="CIRCLE_NOT_FOUND")
"""

from typing import Optional, Any, Dict
from fastapi import HTTPException


class APIException(HTTPException):
    """
    Base API exception with error code support.

    Subclasses only pick a status and defaults. ``message`` and ``code`` stay
    available as attributes so callers (and tests) can branch on the kind of
    failure without digging into ``detail``.
    """

    status: int = 500
    default_message: str = "Internal server error"
    default_code: str = "INTERNAL_ERROR"
    retryable: bool = False

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Args:
            message: Short, user-facing message ("This circle is full")
            code: Machine-readable error code ("CIRCLE_FULL")
            details: Additional error details
            headers: Optional response headers
        """
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details

        detail: Dict[str, Any] = {"message": self.message, "code": self.code}
        if details is not None:
            detail["details"] = details

        super().__init__(status_code=self.status, detail=detail, headers=headers)


class UnauthorizedException(APIException):
    """Missing, invalid, anonymous or unverified identity."""

    status = 401
    default_message = "Unauthorized"
    default_code = "UNAUTHORIZED"


class ForbiddenException(APIException):
    """Caller does not own the entity it tries to mutate."""

    status = 403
    default_message = "Permission denied"
    default_code = "PERMISSION_DENIED"


class NotFoundException(APIException):
    """Referenced entity doesn't exist."""

    status = 404
    default_message = "Not found"
    default_code = "NOT_FOUND"


class ConflictException(APIException):
    """Duplicate pending request, already a member, circle full."""

    status = 409
    default_message = "Conflict"
    default_code = "CONFLICT"


class InvalidStateException(APIException):
    """Transition attempted on an entity in a terminal state."""

    status = 409
    default_message = "Invalid state"
    default_code = "INVALID_STATE"


class ValidationException(APIException):
    """Input rejected by a service rule (length, range, self-reference)."""

    status = 422
    default_message = "Validation error"
    default_code = "VALIDATION_ERROR"


class TransientStoreException(APIException):
    """Store round trip failed; safe to retry later."""

    status = 503
    default_message = "The service is temporarily unavailable, please try again"
    default_code = "STORE_UNAVAILABLE"
    retryable = True

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        retry_after: Optional[int] = None,
    ):
        super().__init__(
            message=message,
            code=code,
            details={"retryAfter": retry_after} if retry_after else None,
            headers={"Retry-After": str(retry_after)} if retry_after else None,
        )
