"""
Authentication manager for the IRIS gateway client.

The user token (an API key) is the primary credential and works for every
operation. OAuth2 client credentials are optional; they are only exchanged
for an access token when an endpoint resolves to the client-credentials
strategy.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import httpx

from shared.config import ClientConfig
from shared.errors import AuthenticationError, ConfigurationError
from shared.logging import get_logger
from shared.metrics import ClientMetrics

from ...version import USER_AGENT
from .strategy import (
    AuthStrategy,
    CLIENT_CREDENTIAL_PATTERNS,
    PUBLIC_PATTERNS,
    determine_auth_strategy,
)
from .token_cache import TokenCache

OAUTH_TOKEN_PATH = "/oauth/token"

# Expiry assumed when the OAuth server omits expires_in (one year).
DEFAULT_TOKEN_LIFETIME = 31536000


@dataclass(frozen=True)
class AuthDecision:
    """Strategy and headers resolved for one request."""

    strategy: AuthStrategy
    headers: Dict[str, str]


class AuthManager:
    """Resolves the credential and headers for each endpoint."""

    PUBLIC_PATTERNS: Tuple[str, ...] = PUBLIC_PATTERNS
    CLIENT_CREDENTIAL_PATTERNS: Tuple[str, ...] = CLIENT_CREDENTIAL_PATTERNS

    def __init__(
        self,
        config: ClientConfig,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        metrics: Optional[ClientMetrics] = None,
        token_cache: Optional[TokenCache] = None,
    ) -> None:
        self.config = config
        self.http_client = http_client
        self.metrics = metrics
        self.token_cache = token_cache or TokenCache()
        self.logger = get_logger("iris.auth.manager")

        self._user_token: Optional[str] = config.api_key
        self._client_id: Optional[str] = None
        self._client_secret: Optional[str] = None

        if config.has_client_credentials():
            self.set_client_credentials(config.client_id, config.client_secret)

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    @property
    def user_token(self) -> Optional[str]:
        return self._user_token

    def set_user_token(self, token: str) -> "AuthManager":
        self._user_token = token
        return self

    def set_client_credentials(self, client_id: str, client_secret: str) -> "AuthManager":
        """Configure client credentials and drop any cached token."""
        self._client_id = client_id
        self._client_secret = client_secret
        self.token_cache.invalidate()
        return self

    def has_client_credentials(self) -> bool:
        return self._client_id is not None and self._client_secret is not None

    def invalidate_tokens(self) -> None:
        self.token_cache.invalidate()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def determine_auth_strategy(self, endpoint: str) -> AuthStrategy:
        return determine_auth_strategy(endpoint, self.PUBLIC_PATTERNS, self.CLIENT_CREDENTIAL_PATTERNS)

    async def get_token_for_endpoint(self, endpoint: str) -> Optional[str]:
        token, _ = await self._token_for(self.determine_auth_strategy(endpoint))
        return token

    async def get_headers_for_endpoint(self, endpoint: str) -> Dict[str, str]:
        decision = await self.resolve(endpoint)
        return decision.headers

    async def resolve(self, endpoint: str) -> AuthDecision:
        """Pick the strategy for ``endpoint`` and build its request headers.

        Raises ConfigurationError before any network call when the required
        credential is missing.
        """
        strategy = self.determine_auth_strategy(endpoint)
        token, strategy = await self._token_for(strategy)

        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        return AuthDecision(strategy=strategy, headers=headers)

    async def _token_for(self, strategy: AuthStrategy) -> Tuple[Optional[str], AuthStrategy]:
        if strategy is AuthStrategy.PUBLIC:
            # Sent when available for the higher rate limits
            return self._user_token or None, strategy

        if strategy is AuthStrategy.CLIENT_CREDENTIALS:
            return await self.get_client_credentials_token(), strategy

        if not self._user_token:
            raise ConfigurationError(
                "API token required. Set IRIS_API_KEY or pass api_key to the client."
            )
        return self._user_token, strategy

    # ------------------------------------------------------------------
    # OAuth2 client credentials
    # ------------------------------------------------------------------

    async def get_client_credentials_token(self) -> str:
        """Return a cached client-credentials token, fetching one if needed."""
        if self.token_cache.peek() is None and not self.has_client_credentials():
            raise ConfigurationError(
                "Client credentials required but not configured. "
                "Set IRIS_CLIENT_ID and IRIS_CLIENT_SECRET or call set_client_credentials()."
            )
        return await self.token_cache.get_or_refresh(self._fetch_client_credentials_token)

    async def _fetch_client_credentials_token(self) -> Tuple[str, int]:
        url = f"{self.config.api_url}{OAUTH_TOKEN_PATH}"
        form = {
            "grant_type": "client_credentials",
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "scope": "*",
        }
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/x-www-form-urlencoded",
        }

        try:
            if self.http_client is not None:
                response = await self.http_client.post(url, data=form, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.config.timeout) as client:
                    response = await client.post(url, data=form, headers=headers)
        except httpx.HTTPError as e:
            self._record_token_fetch("error")
            self.logger.error("OAuth server unreachable", url=url, error=str(e))
            raise AuthenticationError(f"Failed to connect to OAuth server: {e}") from e

        payload = self._json_or_empty(response)

        if response.status_code != 200:
            self._record_token_fetch("rejected")
            message = (
                payload.get("error_description")
                or payload.get("message")
                or payload.get("error")
                or "Unknown error"
            )
            raise AuthenticationError(
                f"Failed to obtain client credentials token (HTTP {response.status_code}): {message}",
                status_code=response.status_code,
            )

        access_token = payload.get("access_token")
        if not access_token:
            self._record_token_fetch("rejected")
            raise AuthenticationError("OAuth server returned success but no access_token")

        expires_in = payload.get("expires_in")
        expires_in = DEFAULT_TOKEN_LIFETIME if expires_in is None else int(expires_in)
        self._record_token_fetch("success")

        if self.config.debug:
            self.logger.info("Obtained client credentials token", expires_in=expires_in)

        return access_token, expires_in

    @staticmethod
    def _json_or_empty(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}

    def _record_token_fetch(self, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.record_token_fetch(outcome)
