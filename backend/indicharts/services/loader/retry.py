"""
Retry policy for upstream fetches.

A policy is a plain value: how many attempts, how long to back off after
each failed attempt, and which failures are worth retrying.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from indicharts.services.base import (
    RATE_LIMIT_MARKERS,
    TRANSIENT_MARKERS,
    PermanentUpstreamError,
    TransientUpstreamError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """
    max_attempts: total attempts per symbol, including the first
    base_delay_ms: backoff after attempt n is base_delay_ms * 2^(n-1)
    """

    max_attempts: int = 3
    base_delay_ms: int = 1000

    def backoff(self, attempt: int) -> float:
        """Delay in seconds after failed attempt number `attempt` (1-based)."""
        return self.base_delay_ms * (2 ** (attempt - 1)) / 1000.0

    def is_transient(self, error: BaseException) -> bool:
        if isinstance(error, TransientUpstreamError):
            return True
        if isinstance(error, PermanentUpstreamError):
            return False
        if isinstance(error, (asyncio.TimeoutError, ConnectionError)):
            return True
        text = str(error).lower()
        return any(marker in text for marker in RATE_LIMIT_MARKERS + TRANSIENT_MARKERS)


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    sleep: Sleep = asyncio.sleep,
    context: str = "",
) -> T:
    """
    Await `func()` under `policy`.

    Every failed transient attempt is followed by its backoff, including the
    last one, so a symbol that keeps failing cools down before its pool slot
    is released. Raises the last error once attempts run out, or the first
    non-transient error straight away.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await func()
        except Exception as e:
            if not policy.is_transient(e):
                logger.warning(f"{context}: permanent failure on attempt {attempt}: {e}")
                raise

            delay = policy.backoff(attempt)
            logger.warning(
                f"{context}: attempt {attempt}/{policy.max_attempts} failed ({e}), "
                f"backing off {delay:.1f}s"
            )
            await sleep(delay)
            if attempt >= policy.max_attempts:
                raise
