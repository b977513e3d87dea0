"""
Error Handlers
Custom exception handlers for FastAPI.
"""

import logging
from typing import Dict, Type

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..errors import (
    ConflictingTransition,
    InvalidReason,
    ProductNotFound,
    RequiresOverride,
    WorkflowError,
)

logger = logging.getLogger(__name__)


WORKFLOW_ERROR_STATUS: Dict[Type[WorkflowError], int] = {
    RequiresOverride: status.HTTP_409_CONFLICT,
    ConflictingTransition: status.HTTP_409_CONFLICT,
    InvalidReason: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ProductNotFound: status.HTTP_404_NOT_FOUND,
}


def workflow_error_status(exc: WorkflowError) -> int:
    for error_type, status_code in WORKFLOW_ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def _error_response(status_code: int, message: str, error_type: str, details=None) -> JSONResponse:
    content = {"error": {"message": message, "type": error_type}}
    if details is not None:
        content["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def setup_error_handlers(app: FastAPI) -> None:
    """
    Set up custom error handlers for the FastAPI app.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(WorkflowError)
    async def workflow_error_handler(request: Request, exc: WorkflowError):
        """Handle refused workflow actions."""
        status_code = workflow_error_status(exc)
        logger.warning(
            f"Workflow error: {exc.message}",
            extra={"status_code": status_code, "details": exc.details, "path": request.url.path},
        )
        return _error_response(status_code, exc.message, exc.__class__.__name__, exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors."""
        logger.warning(f"Validation error: {exc}", extra={"path": request.url.path})

        # Convert error details to JSON-serializable format
        errors = [
            {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "")),
                "type": error.get("type", ""),
            }
            for error in exc.errors()
        ]
        return _error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Request validation failed",
            "ValidationError",
            errors,
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        """Handle value errors."""
        logger.warning(f"Value error: {exc}", extra={"path": request.url.path})
        return _error_response(status.HTTP_400_BAD_REQUEST, str(exc), "ValueError")

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(f"Unexpected error: {exc}", exc_info=True, extra={"path": request.url.path})
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred",
            "InternalServerError",
        )
