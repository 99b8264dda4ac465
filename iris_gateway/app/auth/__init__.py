"""
Authentication for outbound IRIS requests.
"""

from .strategy import AuthStrategy, PUBLIC_PATTERNS, determine_auth_strategy, normalize_endpoint
from .token_cache import TokenCache
from .manager import AuthDecision, AuthManager

__all__ = [
    "AuthDecision",
    "AuthManager",
    "AuthStrategy",
    "PUBLIC_PATTERNS",
    "TokenCache",
    "determine_auth_strategy",
    "normalize_endpoint",
]
