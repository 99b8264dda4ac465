"""
Cache for the OAuth2 client-credentials access token.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional, Tuple

from shared.logging import get_logger

# Tokens are treated as expired this many seconds early.
EXPIRY_SAFETY_MARGIN = 60

TokenFetcher = Callable[[], Awaitable[Tuple[str, int]]]


class TokenCache:
    """Holds one access token and its expiry.

    Refreshes run under a lock with a re-check, so concurrent callers that
    find the cache empty share a single fetch.
    """

    def __init__(self, safety_margin: int = EXPIRY_SAFETY_MARGIN) -> None:
        self.safety_margin = safety_margin
        self.logger = get_logger("iris.auth.token_cache")

        self._token: Optional[str] = None
        self._expires_at: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def expires_at(self) -> Optional[float]:
        return self._expires_at

    def peek(self) -> Optional[str]:
        """Return the cached token if it is still comfortably valid."""
        if self._token is None or self._expires_at is None:
            return None
        if time.time() < self._expires_at - self.safety_margin:
            return self._token
        return None

    async def get_or_refresh(self, fetch: TokenFetcher) -> str:
        """Return the cached token, calling ``fetch`` when it is missing or stale.

        ``fetch`` returns ``(access_token, expires_in_seconds)``.
        """
        token = self.peek()
        if token is not None:
            return token

        async with self._lock:
            token = self.peek()
            if token is not None:
                return token

            token, expires_in = await fetch()
            self._token = token
            self._expires_at = time.time() + expires_in
            self.logger.debug("Cached client credentials token", expires_in=expires_in)
            return token

    def invalidate(self) -> None:
        """Drop the cached token so the next request re-authenticates."""
        if self._token is not None:
            self.logger.info("Invalidated client credentials token")
        self._token = None
        self._expires_at = None
