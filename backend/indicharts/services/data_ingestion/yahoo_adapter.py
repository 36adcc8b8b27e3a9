"""
Yahoo Finance Data Adapter

Fetches candles straight from Yahoo Finance with yfinance, for deployments
that do not run the quote proxy.
"""

import asyncio
import logging
from typing import Optional

import yfinance as yf

from indicharts.schemas.market import Candle, SymbolInfo, Timeframe
from indicharts.services.base import (
    ExternalAPIError,
    PermanentUpstreamError,
    classify_upstream_message,
)
from indicharts.services.data_ingestion.interface import CandleSourceInterface
from indicharts.services.data_ingestion.symbols import get_popular_symbols, search_catalogue

logger = logging.getLogger(__name__)


# Timeframe mapping for yfinance (4h is resampled from 1h)
TIMEFRAME_MAP = {
    Timeframe.M1: "1m",
    Timeframe.M5: "5m",
    Timeframe.M15: "15m",
    Timeframe.H1: "1h",
    Timeframe.H4: "1h",
    Timeframe.D1: "1d",
}

# Longest history yfinance serves per interval
PERIOD_MAP = {
    Timeframe.M1: "7d",
    Timeframe.M5: "60d",
    Timeframe.M15: "60d",
    Timeframe.H1: "730d",
    Timeframe.H4: "730d",
    Timeframe.D1: "5y",
}


def _daily_period(limit: int) -> str:
    # 252 trading days per year; crypto trades every day, so round up
    if limit <= 252:
        return "1y"
    elif limit <= 504:
        return "2y"
    elif limit <= 1260:
        return "5y"
    return "max"


class YahooFinanceSource(CandleSourceInterface):
    """Candle source backed by yfinance."""

    @property
    def name(self) -> str:
        return "YahooFinance"

    def _history(self, symbol: str, timeframe: Timeframe, limit: int) -> list[Candle]:
        ticker = yf.Ticker(symbol)
        interval = TIMEFRAME_MAP[timeframe]
        period = _daily_period(limit) if timeframe == Timeframe.D1 else PERIOD_MAP[timeframe]

        hist = ticker.history(period=period, interval=interval)
        if hist.empty:
            logger.warning(f"No data returned for {symbol} {timeframe.value}")
            return []

        if timeframe == Timeframe.H4:
            hist = hist.resample("4h").agg(
                {"Open": "first", "High": "max", "Low": "min", "Close": "last", "Volume": "sum"}
            ).dropna()

        hist = hist.tail(limit)

        candles = []
        for idx, row in hist.iterrows():
            candles.append(
                Candle(
                    timestamp=int(idx.timestamp()),
                    open=float(row["Open"]),
                    high=float(row["High"]),
                    low=float(row["Low"]),
                    close=float(row["Close"]),
                    volume=float(row.get("Volume", 0) or 0),
                )
            )
        return candles

    async def fetch_candles(
        self, symbol: str, timeframe: Timeframe, limit: int
    ) -> list[Candle]:
        timeframe = Timeframe(timeframe)
        logger.info(f"Fetching {symbol} {timeframe.value} from Yahoo Finance...")
        try:
            return await asyncio.to_thread(self._history, symbol, timeframe, limit)
        except ExternalAPIError:
            raise
        except Exception as e:
            raise classify_upstream_message(
                self.name, f"error getting data for {symbol} {timeframe.value}: {e}"
            ) from e

    def _info(self, symbol: str) -> Optional[SymbolInfo]:
        info = yf.Ticker(symbol).info
        if not info:
            return None
        return SymbolInfo(
            symbol=symbol,
            name=info.get("longName") or info.get("shortName") or symbol,
            type=(info.get("quoteType") or "unknown").lower(),
            currency=info.get("currency") or "USD",
            exchange=info.get("exchange") or "Unknown",
        )

    async def fetch_symbol_info(self, symbol: str) -> SymbolInfo:
        symbol = symbol.upper().strip()
        try:
            info = await asyncio.to_thread(self._info, symbol)
        except Exception as e:
            raise classify_upstream_message(
                self.name, f"error getting data for info {symbol}: {e}"
            ) from e
        if info is None:
            raise PermanentUpstreamError(self.name, f"unknown symbol {symbol}")
        return info

    async def search_symbols(self, query: str) -> list[SymbolInfo]:
        results = search_catalogue(query)
        if results:
            return results

        # Unknown to the catalogue: try the query as a ticker
        try:
            info = await asyncio.to_thread(self._info, query.upper().strip())
        except Exception as e:
            logger.debug(f"Could not resolve {query!r} on Yahoo Finance: {e}")
            return []
        return [info] if info else []

    async def fetch_popular_symbols(self) -> list[str]:
        return get_popular_symbols()
