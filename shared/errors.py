"""
Shared error handling for the IRIS gateway client.

Every failure that crosses the client boundary is one of the classes below.
Each carries the HTTP status code (when there was a response), the backend
message and any structured field errors, so a presentation layer can render
it without looking at raw transport exceptions.
"""

import json
from typing import Dict, Any, List, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    status_code: Optional[int] = None
    request_id: Optional[str] = None
    errors: Optional[Any] = None
    details: Dict[str, Any] = {}


class IrisError(Exception):
    """Base exception for IRIS client errors."""

    default_code = "IRIS_ERROR"

    def __init__(
        self,
        message: str = "",
        status_code: Optional[int] = None,
        *,
        code: Optional[str] = None,
        errors: Optional[Any] = None,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code or self.default_code
        self.message = message
        self.status_code = status_code
        self.errors = errors
        self.request_id = request_id or None
        self.details = details or {}
        super().__init__(message)

    def format_message(self) -> str:
        """Get a formatted error message for logging."""
        message = self.message

        if self.request_id:
            message += f" (Request ID: {self.request_id})"

        if self.errors:
            message += "\nErrors: " + json.dumps(self.errors, indent=4)

        return message

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            status_code=self.status_code,
            request_id=self.request_id,
            errors=self.errors,
            details=self.details,
        )


class ConfigurationError(IrisError):
    """A required credential or setting is missing."""

    default_code = "CONFIGURATION_ERROR"


class AuthenticationError(IrisError):
    """Authentication-related errors (401/403)."""

    default_code = "AUTHENTICATION_ERROR"

    def __init__(self, message: str = "Authentication failed", status_code: Optional[int] = 401, **kwargs):
        super().__init__(message, status_code, **kwargs)


class NotFoundError(IrisError):
    """The backend reported 404."""

    default_code = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found", status_code: Optional[int] = 404, **kwargs):
        super().__init__(message, status_code, **kwargs)


class ValidationError(IrisError):
    """Validation-related errors (422)."""

    default_code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Validation failed", errors: Optional[Dict[str, Any]] = None, **kwargs):
        kwargs.setdefault("status_code", 422)
        super().__init__(message, errors=errors, **kwargs)
        self.validation_errors: Dict[str, Any] = errors if isinstance(errors, dict) else {}

    def field_errors(self, field: str) -> List[str]:
        """Get errors for a specific field."""
        value = self.validation_errors.get(field) or []
        return value if isinstance(value, list) else [value]

    def has_field_error(self, field: str) -> bool:
        return bool(self.validation_errors.get(field))

    def error_fields(self) -> List[str]:
        return list(self.validation_errors.keys())

    def all_messages(self) -> List[str]:
        """Flat list of ``field: message`` strings."""
        messages = []
        for field in self.validation_errors:
            for error in self.field_errors(field):
                messages.append(f"{field}: {error}")
        return messages


class RateLimitError(IrisError):
    """Rate limiting errors (429)."""

    default_code = "RATE_LIMIT_ERROR"

    def __init__(self, message: str = "Rate limit exceeded", retry_after: int = 60, **kwargs):
        kwargs.setdefault("status_code", 429)
        super().__init__(message, **kwargs)
        self.retry_after = retry_after
        self.details.setdefault("retry_after", retry_after)

    def should_retry(self) -> bool:
        """True when the advertised wait is short enough to be worth honoring (max 5 minutes)."""
        return 0 < self.retry_after <= 300


class ServerError(IrisError):
    """Backend returned 5xx after all retry attempts."""

    default_code = "SERVER_ERROR"


class TransportError(IrisError):
    """Connection failures and timeouts after all retry attempts."""

    default_code = "TRANSPORT_ERROR"


class MalformedResponseError(IrisError):
    """Non-empty response body that is not valid JSON."""

    default_code = "MALFORMED_RESPONSE"


class PreconditionError(IrisError):
    """A local precondition failed before any request was sent."""

    default_code = "PRECONDITION_ERROR"
