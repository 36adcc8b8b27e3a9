"""Value-based ordering of symbol groups."""

from indicharts.services.sorting.engine import SortEngine

__all__ = ["SortEngine"]
