"""Visibility window for lazy loading."""

import math

# Rows loaded above the first visible row
LEADING_BUFFER = 2
# Extra rows counted into the viewport
VIEWPORT_BUFFER = 2
# Rows loaded below the viewport
TRAILING_BUFFER = 5


def compute_load_window(
    offset: float,
    viewport_size: float,
    item_size: float,
    total: int,
) -> tuple[int, int]:
    """
    Index range [start, end) worth loading for a scrolled list.

    The visible rows plus a small margin on both sides, clamped to the list.
    Returns (0, 0) for an empty list.
    """
    if total <= 0:
        return (0, 0)
    if item_size <= 0:
        raise ValueError("item_size must be positive")

    first_visible = math.floor(max(offset, 0.0) / item_size)
    visible_count = math.ceil(max(viewport_size, 0.0) / item_size) + VIEWPORT_BUFFER

    start = min(max(first_visible - LEADING_BUFFER, 0), total - 1)
    end = min(max(first_visible + visible_count + TRAILING_BUFFER, 0), total)
    return (start, end)
