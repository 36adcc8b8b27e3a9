"""
Batch Loader

CONTRACT:
    BatchScheduler.load_range(symbols, start, end)
    BatchScheduler.load_values(group, symbols)
    compute_load_window(offset, viewport_size, item_size, total) -> (start, end)

RESPONSIBILITIES:
    - Bounded-concurrency fetch pools (full history: 3, value only: 5)
    - Retry transient upstream failures with exponential backoff
    - Drop completions computed under outdated parameters
"""

from indicharts.services.loader.pool import FetchPool
from indicharts.services.loader.retry import RetryPolicy, call_with_retry
from indicharts.services.loader.scheduler import BatchScheduler
from indicharts.services.loader.window import compute_load_window

__all__ = [
    "BatchScheduler",
    "FetchPool",
    "RetryPolicy",
    "call_with_retry",
    "compute_load_window",
]
