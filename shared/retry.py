"""
Retry policy for outbound IRIS requests.

The executor owns the retry loop; this module decides *whether* a failed
attempt is worth repeating and *how long* to wait before the next one.
"""

import math
import random
from typing import Optional

import httpx


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(self,
                 max_attempts: int = 3,
                 base_delay: float = 1.0,
                 max_delay: float = 60.0,
                 exponential_base: float = 2.0,
                 jitter: bool = False):
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter


def is_retryable_status(status_code: int) -> bool:
    """5xx and 429 are transient; every other status is final."""
    return status_code >= 500 or status_code == 429


def is_retryable_exception(exc: BaseException) -> bool:
    """Connection errors and timeouts raised by the transport."""
    return isinstance(exc, httpx.TransportError)


def retry_reason(status_code: Optional[int]) -> str:
    if status_code is None:
        return "transport_error"
    if status_code == 429:
        return "rate_limited"
    return "server_error"


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Parse a ``Retry-After`` header given in seconds.

    HTTP-date values and garbage are ignored (``None``) so the caller falls
    back to exponential backoff.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    if not math.isfinite(seconds):
        return None
    return max(0, int(seconds))


def calculate_delay_ms(attempt: int, config: RetryConfig, retry_after: Optional[int] = None) -> int:
    """Delay before the next attempt, in milliseconds.

    ``attempt`` is the 1-based number of attempts already made. A server
    supplied ``Retry-After`` wins over exponential backoff.
    """
    if retry_after is not None:
        return retry_after * 1000

    delay = config.base_delay * (config.exponential_base ** attempt)
    delay = min(delay, config.max_delay)

    if config.jitter:
        jitter_amount = delay * 0.1  # 10% jitter
        delay += random.uniform(-jitter_amount, jitter_amount)

    return int(max(0.0, delay) * 1000)
