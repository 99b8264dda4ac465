from .client import HttpClient
from .responses import error_from_response, parse_response

__all__ = [
    "HttpClient",
    "error_from_response",
    "parse_response",
]
