"""
Response parsing and error classification.
"""

import json
from typing import Any, Dict, Optional, Tuple

import httpx

from shared.errors import (
    AuthenticationError,
    IrisError,
    MalformedResponseError,
    NotFoundError,
    RateLimitError,
    ServerError,
    ValidationError,
)
from shared.retry import parse_retry_after

DEFAULT_RETRY_AFTER = 60


def parse_response(response: httpx.Response) -> Any:
    """Decode a successful response body.

    An empty body means success without payload. Payloads wrapped as
    ``{"data": ...}`` are unwrapped; anything else is returned as-is.
    """
    body = response.content
    if not body.strip():
        return {"success": True}

    try:
        payload = json.loads(body)
    except ValueError as e:
        raise MalformedResponseError(
            f"Invalid JSON response: {e}",
            response.status_code,
            request_id=response.headers.get("X-Request-Id"),
        ) from e

    if isinstance(payload, dict) and payload.get("data") is not None:
        return payload["data"]

    return payload


def backend_error_details(response: httpx.Response, fallback: str) -> Tuple[str, Optional[Any]]:
    """Extract ``(message, errors)`` from a backend error body."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        payload = {}

    message = payload.get("message") or payload.get("error") or fallback
    if not isinstance(message, str):
        message = json.dumps(message)

    return message, payload.get("errors")


def error_from_response(response: httpx.Response) -> IrisError:
    """Map a 4xx/5xx response onto the client error taxonomy."""
    status = response.status_code
    request = response.request
    fallback = f"{request.method} {request.url} resulted in {status} {response.reason_phrase}"
    message, errors = backend_error_details(response, fallback)
    context: Dict[str, Any] = {
        "request_id": response.headers.get("X-Request-Id") or None,
        "details": {"url": str(request.url), "method": request.method},
    }

    if status in (401, 403):
        return AuthenticationError(message, status_code=status, errors=errors, **context)
    if status == 404:
        return NotFoundError(message, status_code=status, errors=errors, **context)
    if status == 422:
        return ValidationError(message, errors=errors, **context)
    if status == 429:
        retry_after = parse_retry_after(response.headers.get("Retry-After")) or DEFAULT_RETRY_AFTER
        return RateLimitError(message, retry_after=retry_after, errors=errors, **context)
    if status >= 500:
        return ServerError(f"Server error: {message}", status, errors=errors, **context)
    return IrisError(message, status, code="API_ERROR", errors=errors, **context)
