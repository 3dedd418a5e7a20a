"""
Global Exception Handlers

Renders every failed request as an ErrorResponse so the inbox can show a
single error banner format.

Design Considerations:
- Domain exceptions mapped to status codes here, not in the routes
- 4xx logged at WARNING, 5xx at ERROR with traceback
- Internal error text never returned for unexpected exceptions
"""

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse as StarletteJSONResponse
from pydantic import ValidationError

from fsm_api.models.errors import ErrorCode, ErrorResponse, ValidationErrorResponse, ValidationErrorItem
from fsm_api.services.email_service import EmailNotFoundError
from fsm_intake.email_processing import IntakeError
from fsm_intake.storage import StorageError

# Configure logging
logger = logging.getLogger(__name__)


class DateTimeEncoder(json.JSONEncoder):
    """JSON encoder that handles datetime objects."""
    def default(self, obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


def serialize_json(obj):
    """Serialize object to JSON string with datetime support."""
    return json.dumps(obj, cls=DateTimeEncoder)


class JSONResponse(StarletteJSONResponse):
    """JSONResponse that handles datetime serialization."""
    def render(self, content):
        return serialize_json(content).encode("utf-8")


def add_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, pydantic_validation_handler)
    app.add_exception_handler(IntakeError, intake_exception_handler)
    app.add_exception_handler(EmailNotFoundError, not_found_exception_handler)
    app.add_exception_handler(StorageError, storage_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Exception handlers registered")


def error_response(
    request: Request,
    status_code: int,
    message: str,
    error_code: str,
    details: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    """Build the standard error envelope; 5xx failures are retryable."""
    body = ErrorResponse(
        status="error",
        message=message,
        error_code=error_code,
        path=request.url.path,
        retryable=status_code >= 500,
        details=details,
        timestamp=datetime.now(timezone.utc)
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    """
    Handle HTTP exceptions with standardized format.

    Args:
        request: Request that caused exception
        exc: HTTP exception

    Returns:
        Standardized error response
    """
    log_exception(request, exc, exc.status_code)
    return error_response(
        request,
        exc.status_code,
        str(exc.detail),
        ErrorCode.for_http_status(exc.status_code)
    )


def _validation_items(exc) -> list:
    # loc tuples become lists of strings
    return [
        ValidationErrorItem(
            loc=[str(loc_item) for loc_item in error["loc"]],
            msg=error["msg"],
            type=error["type"]
        )
        for error in exc.errors()
    ]


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request validation errors with per-field details.

    Args:
        request: Request that caused exception
        exc: Validation exception

    Returns:
        Detailed validation error response
    """
    log_exception(request, exc, status.HTTP_422_UNPROCESSABLE_ENTITY)

    body = ValidationErrorResponse(
        status="error",
        message="Request validation error",
        error_code=ErrorCode.VALIDATION_ERROR.value,
        path=request.url.path,
        validation_errors=_validation_items(exc),
        timestamp=datetime.now(timezone.utc)
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=body.model_dump()
    )


async def pydantic_validation_handler(
    request: Request,
    exc: ValidationError
) -> JSONResponse:
    """Handle model validation errors raised inside handlers."""
    log_exception(request, exc, status.HTTP_422_UNPROCESSABLE_ENTITY)

    body = ValidationErrorResponse(
        status="error",
        message="Data validation error",
        error_code=ErrorCode.VALIDATION_ERROR.value,
        path=request.url.path,
        validation_errors=_validation_items(exc),
        timestamp=datetime.now(timezone.utc)
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=body.model_dump()
    )


async def intake_exception_handler(request: Request, exc: IntakeError) -> JSONResponse:
    """Malformed webhook payloads answer 400."""
    log_exception(request, exc, status.HTTP_400_BAD_REQUEST)
    return error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        str(exc),
        ErrorCode.INVALID_PAYLOAD.value,
        {"reason": str(exc)}
    )


async def not_found_exception_handler(request: Request, exc: EmailNotFoundError) -> JSONResponse:
    log_exception(request, exc, status.HTTP_404_NOT_FOUND)
    return error_response(
        request,
        status.HTTP_404_NOT_FOUND,
        "Email not found",
        ErrorCode.EMAIL_NOT_FOUND.value,
        {"id": exc.email_id}
    )


async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Storage failures answer 500; nothing was changed."""
    log_exception(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, include_traceback=True)
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Email storage is unavailable",
        ErrorCode.STORAGE_ERROR.value
    )


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle all unhandled exceptions with safe error responses.

    Args:
        request: Request that caused exception
        exc: Unhandled exception

    Returns:
        Sanitized error response
    """
    log_exception(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, include_traceback=True)
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred",
        ErrorCode.INTERNAL_SERVER_ERROR.value,
        {"type": exc.__class__.__name__}
    )


def log_exception(
    request: Request,
    exc: Exception,
    status_code: int,
    include_traceback: bool = False
) -> None:
    """
    Log exception with request context and appropriate severity.

    Args:
        request: Request that caused exception
        exc: Exception instance
        status_code: HTTP status code
        include_traceback: Whether to include full traceback
    """
    if status_code >= 500:
        log_level = logging.ERROR
    elif status_code >= 400:
        log_level = logging.WARNING
    else:
        log_level = logging.INFO

    error_message = f"Exception during request to {request.method} {request.url.path}"
    error_details = {
        "status_code": status_code,
        "error_type": exc.__class__.__name__,
        "error_message": str(exc),
        "client_host": request.client.host if request.client else "unknown"
    }

    if include_traceback:
        error_details["traceback"] = traceback.format_exc()

    logger.log(log_level, error_message, extra={"error_details": error_details})
