from .router import RequestRouter, RouteTarget, resolve_route

__all__ = [
    "RequestRouter",
    "RouteTarget",
    "resolve_route",
]
