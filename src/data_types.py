"""
Merchantry Data Types and Response Standards.

Response envelopes returned by every MCP tool, plus the shared input
validation helper.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError, field_serializer


class ResponseStatus(str, Enum):
    """Standard response status values."""

    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"


class ErrorCode(str, Enum):
    """Error codes surfaced by the MCP tools."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    EXTERNAL_API_ERROR = "EXTERNAL_API_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ToolResponse(BaseModel):
    """
    Standard response format for all MCP tools.

    Keeps a single structure across tools so clients can branch on
    ``status`` before reading ``data``.
    """

    status: ResponseStatus
    data: Optional[Any] = None
    message: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=datetime.now)

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        return value.isoformat()

    def to_json_string(self, **kwargs) -> str:
        """Convert response to JSON string."""
        return self.model_dump_json(exclude_none=True, **kwargs)


class ErrorResponse(BaseModel):
    """Standard error response format for MCP tools."""

    status: ResponseStatus = ResponseStatus.ERROR
    error_code: ErrorCode
    error_message: str
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=datetime.now)

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        return value.isoformat()

    def to_json_string(self, **kwargs) -> str:
        """Convert error response to JSON string."""
        return self.model_dump_json(exclude_none=True, **kwargs)


def success_response(
    data: Any = None,
    message: str = "Operation completed successfully",
    metadata: Optional[Dict[str, Any]] = None,
) -> ToolResponse:
    """Create a standardized success response."""
    return ToolResponse(
        status=ResponseStatus.SUCCESS, data=data, message=message, metadata=metadata
    )


def warning_response(
    data: Any = None,
    message: str = "Operation completed with warnings",
    metadata: Optional[Dict[str, Any]] = None,
) -> ToolResponse:
    """Create a standardized warning response."""
    return ToolResponse(
        status=ResponseStatus.WARNING, data=data, message=message, metadata=metadata
    )


def error_response(
    error_code: ErrorCode,
    error_message: str,
    details: Optional[Dict[str, Any]] = None,
) -> ErrorResponse:
    """Create a standardized error response."""
    return ErrorResponse(
        error_code=error_code,
        error_message=error_message,
        details=details,
    )


def validate_tool_input(input_model: type, raw_data: Dict[str, Any]) -> BaseModel:
    """
    Validate and parse tool input using Pydantic model.

    Args:
        input_model: Pydantic model class for validation
        raw_data: Raw input data dictionary

    Returns:
        Validated model instance

    Raises:
        ValueError: If validation fails
    """
    try:
        return input_model(**raw_data)
    except ValidationError as e:
        raise ValueError(f"Input validation failed: {str(e)}") from e
