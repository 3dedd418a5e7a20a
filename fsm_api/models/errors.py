"""
Error Response Models

The error envelope every failed intake, inbox or dashboard request
answers with. The inbox renders it as one banner and offers a retry when
``retryable`` is set.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Any, List

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Machine-readable failure categories."""
    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    EMAIL_NOT_FOUND = "EMAIL_NOT_FOUND"
    STORAGE_ERROR = "STORAGE_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"

    @staticmethod
    def for_http_status(status_code: int) -> str:
        """Code for a plain HTTP error raised by a route or by routing."""
        return f"HTTP_{status_code}"


class ErrorResponse(BaseModel):
    """Failed request, as shown in the inbox error banner."""
    status: str = Field(
        default="error",
        description="Always 'error'"
    )
    message: str = Field(
        ...,
        description="Banner text; never contains internal exception text"
    )
    error_code: str = Field(
        ...,
        description="An ErrorCode value, or HTTP_<status> for plain HTTP errors"
    )
    path: str = Field(
        ...,
        description="Request path that failed, e.g. /api/get-emails/{id}"
    )
    retryable: bool = Field(
        default=False,
        description="True when repeating the same request may succeed"
    )
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description=(
            "EMAIL_NOT_FOUND: {'id'}; INVALID_PAYLOAD: {'reason'}; "
            "INTERNAL_SERVER_ERROR: {'type'}; otherwise omitted"
        )
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the failure was reported (UTC)"
    )


class ValidationErrorItem(BaseModel):
    """One rejected field of a webhook or query payload."""
    loc: List[str] = Field(
        ...,
        description="Field path, e.g. ['body', 'output', 'shouldReply']"
    )
    msg: str = Field(
        ...,
        description="Why the value was rejected"
    )
    type: str = Field(
        ...,
        description="pydantic error type"
    )


class ValidationErrorResponse(ErrorResponse):
    """Rejected request body or query, with one item per bad field."""
    validation_errors: List[ValidationErrorItem] = Field(
        ...,
        description="Per-field validation failures"
    )
