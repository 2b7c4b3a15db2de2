"""
Domain errors raised by the deletion workflow services.

Each error carries one of the workflow error codes so the operation surface
can hand a structured error back to the caller without inspecting types.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Error kinds surfaced to callers."""
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFLICT = "CONFLICT"
    DATABASE_ERROR = "DATABASE_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


HTTP_STATUS_BY_CODE = {
    ErrorCode.UNAUTHORIZED: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.CONFLICT: 409,
    ErrorCode.DATABASE_ERROR: 500,
    ErrorCode.UNKNOWN_ERROR: 500,
}


class WorkflowError(Exception):
    """Base exception for deletion workflow operations."""
    code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details


class UnauthorizedError(WorkflowError):
    code = ErrorCode.UNAUTHORIZED


class NotFoundError(WorkflowError):
    code = ErrorCode.NOT_FOUND


class WorkflowValidationError(WorkflowError):
    code = ErrorCode.VALIDATION_ERROR


class ConflictError(WorkflowError):
    code = ErrorCode.CONFLICT


class DatabaseError(WorkflowError):
    code = ErrorCode.DATABASE_ERROR
