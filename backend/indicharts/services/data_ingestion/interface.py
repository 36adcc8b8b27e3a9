"""
Candle Source Interface

Defines the contract for the remote quote service.
"""

from abc import ABC, abstractmethod

from indicharts.schemas.market import Candle, SymbolInfo, Timeframe
from indicharts.services.base import PermanentUpstreamError
from indicharts.services.data_ingestion.symbols import search_catalogue


class CandleSourceInterface(ABC):
    """
    Candle Source Contract.

    fetch_candles returns OHLC candles ordered ascending by timestamp, or
    raises an ExternalAPIError subclass:
        - TransientUpstreamError / RateLimitError: retryable
        - PermanentUpstreamError: invalid or unknown symbol, do not retry

    An empty list means the symbol has no data for the timeframe; it is not
    an error.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Source name for logging."""
        pass

    @abstractmethod
    async def fetch_candles(
        self, symbol: str, timeframe: Timeframe, limit: int
    ) -> list[Candle]:
        """Fetch up to `limit` most recent candles."""
        pass

    @abstractmethod
    async def search_symbols(self, query: str) -> list[SymbolInfo]:
        """Search symbols by ticker or name."""
        pass

    @abstractmethod
    async def fetch_popular_symbols(self) -> list[str]:
        """List of popular symbols for default display."""
        pass

    async def fetch_symbol_info(self, symbol: str) -> SymbolInfo:
        """
        Metadata for one symbol. Defaults to the built-in catalogue; raises
        PermanentUpstreamError for symbols it does not know.
        """
        symbol = symbol.upper().strip()
        for info in search_catalogue(symbol):
            if info.symbol == symbol:
                return info
        raise PermanentUpstreamError(self.name, f"unknown symbol {symbol}")

    async def health_check(self) -> bool:
        """Check connectivity to the source."""
        return True

    async def close(self) -> None:
        """Release network resources."""
        return None
