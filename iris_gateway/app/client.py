"""
IRIS client facade.

    async with IRIS(api_key="...", user_id=193) as iris:
        leads = await iris.http.get("/api/v1/leads", {"status": "Won"})

Without explicit options the configuration is loaded from ``IRIS_*``
environment variables (and ``.env``). Pass ``configure_logs=True`` to install
the structlog pipeline at ``IRIS_LOG_LEVEL``; embedding applications that
configure logging themselves leave it off.
"""

from typing import Any, Optional

import httpx

from shared.config import ClientConfig, load_config
from shared.logging import configure_logging, get_logger
from shared.metrics import ClientMetrics

from ..version import VERSION
from .auth import AuthManager
from .http import HttpClient


class IRIS:
    """Main entry point for talking to the IRIS platform."""

    VERSION = VERSION

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[ClientMetrics] = None,
        configure_logs: bool = False,
        **options: Any,
    ):
        if config is None:
            config = load_config(**options)
        elif options:
            overrides = {key: value for key, value in options.items() if value is not None}
            config = ClientConfig(**{**config.model_dump(), **overrides})

        if configure_logs:
            configure_logging("iris", config.log_level)

        self.config = config
        self.metrics = metrics or ClientMetrics()
        self._transport = transport
        self.logger = get_logger("iris.client", user_id=config.user_id)

        self.http = HttpClient(config, transport=transport, metrics=self.metrics)

        self.logger.debug(
            "IRIS client initialized",
            api_url=config.api_url,
            iris_url=config.iris_url,
            base_url=config.base_url,
        )

    def auth(self) -> AuthManager:
        return self.http.auth

    @property
    def last_request_id(self) -> Optional[str]:
        return self.http.last_request_id

    def as_user(self, user_id: int) -> "IRIS":
        """A new client acting as ``user_id``; the original is left untouched."""
        return IRIS(
            ClientConfig(**{**self.config.model_dump(), "user_id": user_id}),
            transport=self._transport,
            metrics=self.metrics,
        )

    async def __aenter__(self) -> "IRIS":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()
