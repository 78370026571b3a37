"""
eBay Trading API Error Handling Framework.

Structured exceptions for the failure modes of the XML Trading API:
malformed replies, remote Failure/PartialFailure acknowledgements,
configuration and authentication problems.
"""
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field, ConfigDict
from enum import Enum


class ErrorSeverity(str, Enum):
    """Error severity levels."""
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Error categories for classification."""
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    BUSINESS_LOGIC = "business_logic"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN = "unknown"


class ApiErrorDetail(BaseModel):
    """One entry of the Errors container of a Trading API response."""
    code: str = Field("UNKNOWN", description="eBay ErrorCode")
    short_message: str = Field("Unknown error", description="ShortMessage")
    long_message: Optional[str] = Field(None, description="LongMessage")
    severity: Optional[str] = Field(None, description="SeverityCode (Error or Warning)")

    model_config = ConfigDict(frozen=True)

    @property
    def is_warning(self) -> bool:
        return (self.severity or "").lower() == "warning"


class EbayApiException(Exception):
    """Base exception for all eBay API errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response."""
        return {
            "error": {
                "type": self.__class__.__name__,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "details": self.details
            }
        }


class MalformedResponseError(EbayApiException):
    """The reply is not XML or lacks the expected {CallName}Response root."""

    def __init__(
        self,
        call_name: str,
        snippet: str = "",
        status_code: Optional[int] = None
    ):
        message = f"Invalid XML response format for {call_name}"
        details = {
            "call_name": call_name,
            "response_snippet": snippet[:500],
            "status_code": status_code
        }
        super().__init__(
            message,
            ErrorCategory.MALFORMED_RESPONSE,
            ErrorSeverity.CRITICAL,
            details
        )
        self.call_name = call_name
        self.status_code = status_code


class TradingApiError(EbayApiException):
    """
    The Trading API acknowledged a call with Failure or PartialFailure.

    The errors are kept verbatim and in the order eBay returned them so
    callers can render eBay's own diagnostics.
    """

    def __init__(
        self,
        errors: List[ApiErrorDetail],
        ack: str,
        call_name: Optional[str] = None
    ):
        primary = errors[0] if errors else ApiErrorDetail()
        message = primary.long_message or primary.short_message
        details = {
            "ack": ack,
            "call_name": call_name,
            "errors": [error.model_dump(exclude_none=True) for error in errors]
        }
        super().__init__(
            message,
            ErrorCategory.BUSINESS_LOGIC,
            ErrorSeverity.WARNING if ack == "PartialFailure" else ErrorSeverity.ERROR,
            details
        )
        self.errors = list(errors)
        self.ack = ack
        self.call_name = call_name

    @property
    def is_partial_failure(self) -> bool:
        return self.ack == "PartialFailure"

    @property
    def error_codes(self) -> List[str]:
        return [error.code for error in self.errors]

    def has_error_code(self, *codes: str) -> bool:
        """Check whether any returned error carries one of the given codes."""
        wanted = {str(code) for code in codes}
        return any(code in wanted for code in self.error_codes)

    def get_comprehensive_message(self) -> str:
        """Get a message including every eBay error entry."""
        messages = [f"{self.call_name or 'Trading API'} {self.ack}: {self.message}"]
        for error in self.errors:
            messages.append(f"  - [{error.code}] {error.short_message}")
            if error.long_message and error.long_message != error.short_message:
                messages.append(f"    {error.long_message}")
        return "\n".join(messages)


class AuthenticationError(EbayApiException):
    """OAuth authentication failures."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            ErrorCategory.AUTHENTICATION,
            ErrorSeverity.ERROR,
            details
        )


class ConfigurationError(EbayApiException):
    """Invalid configuration or missing credentials."""

    def __init__(self, message: str, missing_fields: Optional[List[str]] = None):
        details = {"missing_fields": missing_fields} if missing_fields else {}
        super().__init__(
            message,
            ErrorCategory.VALIDATION,
            ErrorSeverity.CRITICAL,
            details
        )


def extract_trading_error_details(e: TradingApiError) -> Dict[str, Any]:
    """
    Extract error details from a TradingApiError for tool responses.

    Args:
        e: TradingApiError exception

    Returns:
        Dictionary with every remote error entry and the acknowledgement
    """
    return {
        "ack": e.ack,
        "call_name": e.call_name,
        "errors": [error.model_dump(exclude_none=True) for error in e.errors],
        "is_partial_failure": e.is_partial_failure,
        "comprehensive_message": e.get_comprehensive_message()
    }
