"""
Market Data Schemas

Candles and symbol metadata as returned by the quote service.
Candles are ordered ascending by timestamp and immutable once fetched.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================


class Timeframe(str, Enum):
    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"


class MarketGroup(str, Enum):
    """Market-list tabs."""

    CRYPTO = "crypto"
    INDEX = "index"
    FOREX = "forex"
    COMMODITY = "commodity"


# =============================================================================
# CANDLES
# =============================================================================


class Candle(BaseModel):
    """Single OHLC price bar. Timestamp is epoch seconds."""

    model_config = ConfigDict(frozen=True)

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float = Field(default=0.0, ge=0)


# =============================================================================
# SYMBOLS
# =============================================================================


class SymbolInfo(BaseModel):
    """Symbol metadata from search/listing."""

    symbol: str
    name: str
    type: str = "unknown"
    currency: str = "USD"
    exchange: str = "Unknown"


class SymbolSearchResponse(BaseModel):
    """Response for symbol search."""

    query: str
    results: list[SymbolInfo]
    count: int


class PopularSymbolsResponse(BaseModel):
    """Response for the popular symbols listing."""

    symbols: list[str]
    group: Optional[MarketGroup] = None
