"""
Result envelope returned by every deletion workflow operation.
"""

from pydantic import BaseModel
from typing import Any, Dict, Generic, Optional, TypeVar

from app.core.exceptions import ErrorCode, WorkflowError

T = TypeVar("T")


class ErrorDetailSchema(BaseModel):
    """Structured error handed back to the caller."""
    code: ErrorCode
    message: str
    field: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class ActionResult(BaseModel, Generic[T]):
    """Either ``success`` with ``data`` or a failure with ``error``."""
    success: bool
    data: Optional[T] = None
    error: Optional[ErrorDetailSchema] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ActionResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        code: ErrorCode,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> "ActionResult":
        return cls(
            success=False,
            error=ErrorDetailSchema(code=code, message=message, field=field, details=details)
        )

    @classmethod
    def from_error(cls, error: WorkflowError) -> "ActionResult":
        return cls.fail(error.code, error.message, field=error.field, details=error.details)
