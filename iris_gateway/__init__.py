"""
Python client for the IRIS AI-agent platform.
"""

from .version import VERSION
from .app.client import IRIS
from .app.auth import AuthManager, AuthStrategy, TokenCache
from .app.routing import RequestRouter, RouteTarget
from .app.http import HttpClient

__version__ = VERSION

__all__ = [
    "IRIS",
    "AuthManager",
    "AuthStrategy",
    "HttpClient",
    "RequestRouter",
    "RouteTarget",
    "TokenCache",
]
