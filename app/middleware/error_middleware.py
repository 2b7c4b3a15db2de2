"""
Error Handling Middleware

Turns exceptions that escape the endpoints into the same result envelope the
workflow operations return.
"""

import logging
import uuid
from typing import Callable

from fastapi import FastAPI, Request, Response, HTTPException
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import ErrorCode, HTTP_STATUS_BY_CODE, WorkflowError
from app.schemas.result import ActionResult

logger = logging.getLogger(__name__)


def error_response(result: ActionResult, headers: dict = None) -> JSONResponse:
    """JSON response for a failed result, with the status its code maps to."""
    return JSONResponse(
        status_code=HTTP_STATUS_BY_CODE[result.error.code],
        content=result.model_dump(mode="json"),
        headers=headers,
    )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware for handling unhandled exceptions."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.error_mappings = {
            SQLAlchemyError: (ErrorCode.DATABASE_ERROR, "A database error occurred. Please try again later."),
        }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and handle any unhandled exceptions."""
        try:
            response = await call_next(request)
            return response

        except HTTPException as e:
            # Let FastAPI handle HTTP exceptions normally
            raise e

        except Exception as e:
            return self._handle_unhandled_exception(request, e)

    def _handle_unhandled_exception(self, request: Request, error: Exception) -> JSONResponse:
        error_id = uuid.uuid4().hex
        code, message = self._classify_error(error)

        logger.error(
            f"Unhandled {type(error).__name__} on {request.method} {request.url.path} "
            f"(error_id={error_id}): {error}",
            exc_info=error,
        )

        result = ActionResult.fail(code, message, details={"error_id": error_id})
        return error_response(result, headers={"X-Error-ID": error_id})

    def _classify_error(self, error: Exception) -> tuple[ErrorCode, str]:
        for mapped_type, mapping in self.error_mappings.items():
            if isinstance(error, mapped_type):
                return mapping
        return ErrorCode.UNKNOWN_ERROR, "An unexpected error occurred"


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    """Handler for workflow errors raised outside the operation surface."""
    return error_response(ActionResult.from_error(exc))


def register_error_handling(app: FastAPI) -> None:
    """Install the middleware and exception handlers on an app."""
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_exception_handler(WorkflowError, workflow_error_handler)
