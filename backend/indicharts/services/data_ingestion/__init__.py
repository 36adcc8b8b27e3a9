"""
Candle Source Layer

CONTRACT:
    fetch_candles(symbol, timeframe, limit) -> list[Candle]
    search_symbols(query) -> list[SymbolInfo]
    fetch_popular_symbols() -> list[str]

RESPONSIBILITIES:
    - Fetch OHLC candles from the quote proxy (default) or yfinance
    - Normalize both wire formats to Candle
    - Classify failures as transient (retry) or permanent (give up)
"""

from typing import Optional

from indicharts.core.config import settings
from indicharts.services.data_ingestion.interface import CandleSourceInterface
from indicharts.services.data_ingestion.quote_proxy import QuoteProxySource
from indicharts.services.data_ingestion.yahoo_adapter import YahooFinanceSource

# Singleton instance
_source_instance: Optional[CandleSourceInterface] = None


def get_candle_source() -> CandleSourceInterface:
    """Get or create the configured candle source."""
    global _source_instance
    if _source_instance is None:
        if settings.candle_source == "yahoo":
            _source_instance = YahooFinanceSource()
        else:
            _source_instance = QuoteProxySource()
    return _source_instance


async def close_candle_source() -> None:
    """Close the candle source. Called on application shutdown."""
    global _source_instance
    if _source_instance is not None:
        await _source_instance.close()
        _source_instance = None


__all__ = [
    "CandleSourceInterface",
    "QuoteProxySource",
    "YahooFinanceSource",
    "get_candle_source",
    "close_candle_source",
]
