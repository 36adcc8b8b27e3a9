"""
IndiCharts Schema Contracts

JSON contracts shared between the loader, the cache and the API layer.
"""

from indicharts.schemas.market import (
    Timeframe,
    MarketGroup,
    Candle,
    SymbolInfo,
)
from indicharts.schemas.indicators import (
    IndicatorType,
    IndicatorZone,
    IndicatorParams,
    IndicatorRequest,
    IndicatorResult,
    LoadState,
    ParameterSnapshot,
    RecordStatus,
    SortMode,
    SymbolIndicatorRecord,
)

__all__ = [
    # Market
    "Timeframe",
    "MarketGroup",
    "Candle",
    "SymbolInfo",
    # Indicators
    "IndicatorType",
    "IndicatorZone",
    "IndicatorParams",
    "IndicatorRequest",
    "IndicatorResult",
    "LoadState",
    "ParameterSnapshot",
    "RecordStatus",
    "SortMode",
    "SymbolIndicatorRecord",
]
