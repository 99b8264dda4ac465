"""
Backend host routing.

IRIS is served by two backends: the primary data API (leads, bloqs,
integrations, ...) and the workflow API (V5 workflows and chat). The target
host is chosen by substring matching on the endpoint path.
"""

from enum import Enum
from typing import Dict, Tuple

from shared.config import ClientConfig


class RouteTarget(str, Enum):
    PRIMARY = "primary"
    WORKFLOW = "workflow"
    DEFAULT = "default"


# Checked exhaustively before WORKFLOW_MARKERS, so nested paths such as
# /users/{id}/bloqs/... or /bloqs/agents/{id}/workflows/... stay on the primary API.
PRIMARY_MARKERS: Tuple[str, ...] = (
    "/users/",
    "/user/",
    "/leads",
    "/deliverables",
    "/profile",
    "/services",
    "/integrations",
    "/cloud-files",
    "/articles",
    "/bloqs/",
    "/programs",
    "/program-enrollments",
    "/user-programs",
    "/courses",
    "/pages",
    "/videos",
    "/collections",
    "/a2p/",
)

WORKFLOW_MARKERS: Tuple[str, ...] = (
    "/iris/",
    "/chat/",
    "/workflows/",
)


def resolve_route(endpoint: str) -> RouteTarget:
    """First matching rule wins; every endpoint maps to exactly one target."""
    if any(marker in endpoint for marker in PRIMARY_MARKERS):
        return RouteTarget.PRIMARY
    if any(marker in endpoint for marker in WORKFLOW_MARKERS):
        return RouteTarget.WORKFLOW
    return RouteTarget.DEFAULT


class RequestRouter:
    """Maps endpoint paths to absolute URLs on the configured hosts."""

    def __init__(self, config: ClientConfig):
        self.base_urls: Dict[RouteTarget, str] = {
            RouteTarget.PRIMARY: config.api_url.rstrip("/"),
            RouteTarget.WORKFLOW: config.iris_url.rstrip("/"),
            RouteTarget.DEFAULT: config.base_url.rstrip("/"),
        }

    def resolve(self, endpoint: str) -> RouteTarget:
        return resolve_route(endpoint)

    def base_url_for(self, endpoint: str) -> str:
        return self.base_urls[resolve_route(endpoint)]

    def build_url(self, endpoint: str) -> str:
        return f"{self.base_url_for(endpoint)}/{endpoint.lstrip('/')}"
