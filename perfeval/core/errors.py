"""
Service error taxonomy and the uniform response envelope.

Every operation raises one of the coded exceptions below. The API layer renders
them as ``{"success": false, "error": {"code", "message", "details"}}`` so the
caller never sees a raw stack trace or driver exception.

Usage:
    from perfeval.core.errors import NotFound, FailedPrecondition

    raise NotFound("Evaluation", evaluation_id)
    raise FailedPrecondition("Cannot delete department with active employees.")
"""

from typing import Any, Dict, Optional


class ErrorCode:
    """Machine-readable error codes (same vocabulary as callable functions)."""
    INVALID_ARGUMENT = "invalid-argument"
    UNAUTHENTICATED = "unauthenticated"
    PERMISSION_DENIED = "permission-denied"
    NOT_FOUND = "not-found"
    ALREADY_EXISTS = "already-exists"
    FAILED_PRECONDITION = "failed-precondition"
    ABORTED = "aborted"
    DEADLINE_EXCEEDED = "deadline-exceeded"
    UNAVAILABLE = "unavailable"
    INTERNAL = "internal"


# Static code -> message lookup shown to users; unknown codes fall back to raw text
ERROR_MESSAGES: Dict[str, str] = {
    "cancelled": "Function was cancelled.",
    "unknown": "An unknown error occurred.",
    ErrorCode.INVALID_ARGUMENT: "Invalid function arguments provided.",
    ErrorCode.DEADLINE_EXCEEDED: "Function execution timed out.",
    ErrorCode.NOT_FOUND: "Resource not found.",
    ErrorCode.ALREADY_EXISTS: "Resource already exists.",
    ErrorCode.PERMISSION_DENIED: "Permission denied.",
    "resource-exhausted": "Resource quota exceeded.",
    ErrorCode.FAILED_PRECONDITION: "Function precondition failed.",
    ErrorCode.ABORTED: "Function was aborted.",
    "out-of-range": "Value out of valid range.",
    "unimplemented": "Function not implemented.",
    ErrorCode.INTERNAL: "Internal server error.",
    ErrorCode.UNAVAILABLE: "Service temporarily unavailable.",
    "data-loss": "Data loss or corruption.",
    ErrorCode.UNAUTHENTICATED: "Authentication required.",
}

HTTP_STATUS: Dict[str, int] = {
    ErrorCode.INVALID_ARGUMENT: 400,
    ErrorCode.UNAUTHENTICATED: 401,
    ErrorCode.PERMISSION_DENIED: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.ALREADY_EXISTS: 409,
    ErrorCode.ABORTED: 409,
    ErrorCode.FAILED_PRECONDITION: 412,
    ErrorCode.INTERNAL: 500,
    ErrorCode.UNAVAILABLE: 503,
    ErrorCode.DEADLINE_EXCEEDED: 504,
}


class ServiceError(Exception):
    """Base class for every error an operation may surface to its caller."""

    code: str = ErrorCode.INTERNAL

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def http_status(self) -> int:
        return HTTP_STATUS.get(self.code, 500)

    def to_dict(self) -> Dict[str, Any]:
        return error_payload(self.code, self.message, self.details)


class ValidationFailed(ServiceError):
    """Missing or invalid field, caught before any write."""
    code = ErrorCode.INVALID_ARGUMENT


class Unauthenticated(ServiceError):
    code = ErrorCode.UNAUTHENTICATED


class PermissionDenied(ServiceError):
    """Principal lacks the role/permission flag, or crossed tenant boundaries."""
    code = ErrorCode.PERMISSION_DENIED


class NotFound(ServiceError):
    """Referenced document is absent within the caller's tenant."""
    code = ErrorCode.NOT_FOUND

    def __init__(self, resource: str, resource_id: Optional[str] = None) -> None:
        msg = f"{resource} not found"
        super().__init__(msg, {"resource": resource, "id": resource_id} if resource_id else {"resource": resource})
        self.resource = resource
        self.resource_id = resource_id


class AlreadyExists(ServiceError):
    code = ErrorCode.ALREADY_EXISTS


class FailedPrecondition(ServiceError):
    code = ErrorCode.FAILED_PRECONDITION


class Aborted(ServiceError):
    """Write rejected because it was based on a stale version of the document."""
    code = ErrorCode.ABORTED


class DeadlineExceeded(ServiceError):
    code = ErrorCode.DEADLINE_EXCEEDED


class InternalError(ServiceError):
    """Store or transport failure."""
    code = ErrorCode.INTERNAL


def describe_error(code: Optional[str], raw_message: Optional[str] = None) -> str:
    """Return the user-facing message for a code, falling back to the raw text."""
    return ERROR_MESSAGES.get(code or "") or raw_message or "Function call failed"


def error_payload(code: str, raw_message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Build the ``{"success": false, "error": {...}}`` envelope."""
    body_details: Dict[str, Any] = {"reason": raw_message}
    if details:
        body_details.update(details)
    return {
        "success": False,
        "error": {
            "code": code,
            "message": describe_error(code, raw_message),
            "details": body_details,
        },
    }
