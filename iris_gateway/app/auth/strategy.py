"""
Auth strategy resolution.

Which credential an endpoint needs is decided from its path alone.
"""

from enum import Enum
from typing import Iterable


class AuthStrategy(str, Enum):
    """Credential classes an endpoint can require."""
    PUBLIC = "public"
    USER_TOKEN = "user_token"
    CLIENT_CREDENTIALS = "client_credentials"


# Endpoints that work without authentication. Patterns ending in '/' match by
# prefix; the rest match exactly, optionally followed by a query string.
PUBLIC_PATTERNS = (
    "/api/health",
    "/api/v1/leads",
    "/api/v1/integrations/types",
    "/api/v1/bloqs/agents/generate-response",
    "/api/v1/bloqs/agents/ask",
    "/api/v1/public/",
)

# No endpoint requires client credentials today; the user token works everywhere.
CLIENT_CREDENTIAL_PATTERNS: tuple = ()


def normalize_endpoint(endpoint: str) -> str:
    """Ensure exactly one leading slash."""
    return "/" + endpoint.lstrip("/")


def matches_pattern(endpoint: str, pattern: str) -> bool:
    """Match a normalized endpoint against one allow-list pattern.

    ``/api/v1/leads`` matches ``/api/v1/leads`` and ``/api/v1/leads?page=2``
    but not ``/api/v1/leads/aggregation``.
    """
    if pattern.endswith("/"):
        return endpoint.startswith(pattern)
    return endpoint == pattern or endpoint.startswith(pattern + "?")


def determine_auth_strategy(
    endpoint: str,
    public_patterns: Iterable[str] = PUBLIC_PATTERNS,
    client_credential_patterns: Iterable[str] = CLIENT_CREDENTIAL_PATTERNS,
) -> AuthStrategy:
    """Classify an endpoint; public patterns are checked first."""
    endpoint = normalize_endpoint(endpoint)

    if any(matches_pattern(endpoint, pattern) for pattern in public_patterns):
        return AuthStrategy.PUBLIC

    if any(matches_pattern(endpoint, pattern) for pattern in client_credential_patterns):
        return AuthStrategy.CLIENT_CREDENTIALS

    return AuthStrategy.USER_TOKEN
