"""
Fetch Pool

Bounded-concurrency runner for fetch jobs. The bound protects the quote
service from fan-out; it is backpressure, not a speed-up.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Sequence

from indicharts.services.loader.retry import Sleep

logger = logging.getLogger(__name__)


class FetchPool:
    """
    Runs jobs in batches of `size`, pausing `batch_delay_ms` between batches.

    A semaphore caps in-flight jobs across every caller sharing the pool, so
    overlapping batches from different requests still respect `size`.
    One failing job never cancels its siblings: results come back in job
    order, with exceptions in place of values.
    """

    def __init__(
        self,
        name: str,
        size: int,
        batch_delay_ms: int,
        sleep: Sleep = asyncio.sleep,
    ):
        if size < 1:
            raise ValueError(f"pool size must be >= 1, got {size}")
        self.name = name
        self.size = size
        self.batch_delay = batch_delay_ms / 1000.0
        self._sleep = sleep
        self._semaphore = asyncio.Semaphore(size)
        self.in_flight = 0
        self.peak_in_flight = 0

    async def _guarded(self, job: Callable[[], Awaitable[Any]]) -> Any:
        async with self._semaphore:
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            try:
                return await job()
            finally:
                self.in_flight -= 1

    async def run(self, jobs: Sequence[Callable[[], Awaitable[Any]]]) -> list[Any]:
        results: list[Any] = []
        for i in range(0, len(jobs), self.size):
            batch = jobs[i:i + self.size]
            results.extend(
                await asyncio.gather(*(self._guarded(job) for job in batch), return_exceptions=True)
            )

            # Pause between batches to stay under the upstream rate limit
            if i + self.size < len(jobs):
                await self._sleep(self.batch_delay)

        for result in results:
            if isinstance(result, Exception):
                logger.error(f"[{self.name}] job failed: {result}")
        return results
