"""
Sort Engine

Orders a group of symbols by the latest indicator value.

Keeps its own per-group scalar snapshot, filled by the value-only loader
pass, separate from the full-history records: ordering needs one number per
symbol, not a history.
"""

import logging
import math
from typing import Optional

from indicharts.schemas.indicators import SortMode

logger = logging.getLogger(__name__)


class SortEngine:
    """
    Per-group sort snapshots and sort modes.

    Ordering rules:
    - natural: reference ranking (market rank), unranked symbols after the
      ranked ones in original list order
    - ascending / descending: by snapshot value; missing values always sink
      to the bottom
    - ties break by original list position
    """

    def __init__(self):
        self._values: dict[str, dict[str, float]] = {}
        self._modes: dict[str, SortMode] = {}
        self._rankings: dict[str, dict[str, int]] = {}

    # ============ Modes ============

    def mode(self, group: str) -> SortMode:
        return self._modes.get(group, SortMode.NATURAL)

    def set_mode(self, group: str, mode: SortMode) -> None:
        self._modes[group] = SortMode(mode)

    def set_natural_ranking(self, group: str, ranking: dict[str, int]) -> None:
        self._rankings[group] = dict(ranking)

    # ============ Snapshot ============

    def set_value(self, group: str, symbol: str, value: Optional[float]) -> None:
        if value is None or math.isnan(value):
            self._values.get(group, {}).pop(symbol, None)
            return
        self._values.setdefault(group, {})[symbol] = float(value)

    def get_value(self, group: str, symbol: str) -> Optional[float]:
        return self._values.get(group, {}).get(symbol)

    def has_value(self, group: str, symbol: str) -> bool:
        return symbol in self._values.get(group, {})

    def snapshot(self, group: str) -> dict[str, float]:
        return dict(self._values.get(group, {}))

    def clear_all(self) -> None:
        """Drop every group's snapshot. Modes and rankings survive."""
        self._values.clear()

    # ============ Ordering ============

    def order(self, group: str, symbols: list[str], mode: Optional[SortMode] = None) -> list[str]:
        """Return `symbols` in display order for the group's (or the given) mode."""
        mode = SortMode(mode) if mode is not None else self.mode(group)
        position = {symbol: i for i, symbol in enumerate(symbols)}

        if mode == SortMode.NATURAL:
            ranking = self._rankings.get(group, {})
            unranked = len(ranking)
            return sorted(
                symbols,
                key=lambda s: (ranking.get(s, unranked), position[s]),
            )

        values = self._values.get(group, {})
        if mode == SortMode.ASCENDING:
            # Missing counts as +inf
            key = lambda s: (values.get(s, math.inf), position[s])
        else:
            # Missing counts as -inf, negated so it lands last
            key = lambda s: (-values.get(s, -math.inf), position[s])
        return sorted(symbols, key=key)
