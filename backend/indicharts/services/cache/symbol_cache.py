"""
Symbol Cache

Per-symbol computed records plus load-state tracking for one view.

A symbol is in exactly one LoadState:
    unloaded -> loading -> loaded
`loaded` implies a record is present. Loading markers are tagged with the
fingerprint they were dispatched under, so a completion from an older
parameter generation cannot clear a newer in-flight marker.

Only wholesale invalidation is exposed: a parameter change redefines the
formula for every entry.
"""

import logging
from typing import Optional

from indicharts.schemas.indicators import LoadState, SymbolIndicatorRecord

logger = logging.getLogger(__name__)


class SymbolCache:
    """
    In-process store of SymbolIndicatorRecord keyed by symbol.

    Not thread-safe; all mutation happens on the event loop.
    """

    def __init__(self):
        self._records: dict[str, SymbolIndicatorRecord] = {}
        self._loading: dict[str, str] = {}

    def get(self, symbol: str) -> Optional[SymbolIndicatorRecord]:
        return self._records.get(symbol)

    def put(self, symbol: str, record: SymbolIndicatorRecord) -> None:
        """Commit a record, replacing any previous one, and mark it loaded."""
        self._records[symbol] = record
        self._loading.pop(symbol, None)

    def invalidate_all(self) -> None:
        """Drop every record and loading marker."""
        if self._records or self._loading:
            logger.info(
                f"Invalidating cache: {len(self._records)} records, "
                f"{len(self._loading)} in flight"
            )
        self._records.clear()
        self._loading.clear()

    def mark_loading(self, symbol: str, fingerprint: str) -> None:
        # Loading replaces loaded; the old record stays out of view until recommitted
        self._records.pop(symbol, None)
        self._loading[symbol] = fingerprint

    def clear_loading(self, symbol: str, fingerprint: Optional[str] = None) -> None:
        """Clear the loading marker, only if it belongs to `fingerprint` when given."""
        if fingerprint is None or self._loading.get(symbol) == fingerprint:
            self._loading.pop(symbol, None)

    def is_loading(self, symbol: str) -> bool:
        return symbol in self._loading

    def is_loaded(self, symbol: str, fingerprint: Optional[str] = None) -> bool:
        record = self._records.get(symbol)
        if record is None:
            return False
        return fingerprint is None or record.fingerprint == fingerprint

    def state(self, symbol: str) -> LoadState:
        if symbol in self._loading:
            return LoadState.LOADING
        if symbol in self._records:
            return LoadState.LOADED
        return LoadState.UNLOADED

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._records
