"""
Quote Proxy Data Adapter

Fetches candles and symbol data from the HTTP quote proxy in front of
Yahoo Finance (`/yf/candles`, `/yf/search`, `/yf/info`).

Candles may come back in two shapes:
    1. Array of objects: [{timestamp, open, high, low, close, volume}, ...]
    2. Array of arrays:  [[ts, open, high, low, close, volume], ...]
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from indicharts.core.config import settings
from indicharts.schemas.market import Candle, SymbolInfo, Timeframe
from indicharts.services.base import (
    PermanentUpstreamError,
    RateLimitError,
    TransientUpstreamError,
    classify_upstream_message,
)
from indicharts.services.data_ingestion.interface import CandleSourceInterface
from indicharts.services.data_ingestion.symbols import get_popular_symbols

logger = logging.getLogger(__name__)

# Timestamps above this are milliseconds
_MS_THRESHOLD = 10_000_000_000


def parse_candle(raw: Any) -> Optional[Candle]:
    """
    Parse one candle in either wire shape.

    Returns None for malformed entries (missing fields, high < low,
    non-positive prices) so one bad bar does not sink the series.
    """
    try:
        if isinstance(raw, dict):
            ts = raw["timestamp"]
            o, h, l, c = raw["open"], raw["high"], raw["low"], raw["close"]
            v = raw.get("volume") or 0
        elif isinstance(raw, (list, tuple)) and len(raw) >= 5:
            ts, o, h, l, c = raw[:5]
            v = raw[5] if len(raw) > 5 and raw[5] is not None else 0
        else:
            return None

        if None in (ts, o, h, l, c):
            return None
        ts = int(ts)
        if ts > _MS_THRESHOLD:
            ts //= 1000
        o, h, l, c = float(o), float(h), float(l), float(c)
    except (KeyError, TypeError, ValueError):
        return None

    if h < l or h <= 0 or l <= 0 or c <= 0:
        return None
    return Candle(timestamp=ts, open=o, high=h, low=l, close=c, volume=max(float(v), 0.0))


def parse_candles(payload: list, limit: Optional[int] = None) -> list[Candle]:
    """Parse, sort ascending by timestamp and keep the last `limit` candles."""
    candles = [c for c in (parse_candle(item) for item in payload) if c is not None]
    dropped = len(payload) - len(candles)
    if dropped:
        logger.debug(f"Dropped {dropped} malformed candles")
    candles.sort(key=lambda c: c.timestamp)
    if limit is not None and len(candles) > limit:
        candles = candles[-limit:]
    return candles


class QuoteProxySource(CandleSourceInterface):
    """
    aiohttp client for the quote proxy.

    Usage:
        source = QuoteProxySource()
        candles = await source.fetch_candles("BTC-USD", Timeframe.H1, limit=100)
        await source.close()
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self._base_url = (base_url or settings.quote_service_url).rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout or settings.quote_request_timeout)
        self._session = session

    @property
    def name(self) -> str:
        return "QuoteProxy"

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an active HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"Accept": "application/json"},
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def _get_json(self, path: str, params: dict, context: str) -> Any:
        """GET a JSON document, mapping failures onto upstream error types."""
        session = await self._ensure_session()
        url = f"{self._base_url}{path}"

        try:
            async with session.get(url, params=params) as resp:
                if resp.status == 429:
                    raise RateLimitError(
                        self.name, f"rate limit exceeded for {context}", {"status": 429}
                    )
                if resp.status >= 500:
                    body = await resp.text()
                    raise TransientUpstreamError(
                        self.name,
                        f"server error HTTP {resp.status} for {context}: {body[:200]}",
                        {"status": resp.status},
                    )
                if resp.status != 200:
                    body = await resp.text()
                    raise PermanentUpstreamError(
                        self.name,
                        f"HTTP {resp.status} for {context}: {body[:200]}",
                        {"status": resp.status},
                    )
                payload = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientUpstreamError(self.name, f"failed to fetch {context}: {e}") from e

        if isinstance(payload, dict) and "error" in payload:
            raise classify_upstream_message(self.name, f"{context}: {payload['error']}")
        return payload

    async def fetch_candles(
        self, symbol: str, timeframe: Timeframe, limit: int
    ) -> list[Candle]:
        timeframe = Timeframe(timeframe)
        context = f"{symbol} {timeframe.value}"
        payload = await self._get_json(
            "/yf/candles",
            {"symbol": symbol, "tf": timeframe.value, "limit": str(limit)},
            context,
        )

        if not isinstance(payload, list):
            raise PermanentUpstreamError(
                self.name,
                f"unexpected candle payload for {context}: {type(payload).__name__}",
            )

        candles = parse_candles(payload, limit)
        logger.info(f"{self.name}: {len(candles)} candles for {context}")
        return candles

    async def fetch_symbol_info(self, symbol: str) -> SymbolInfo:
        payload = await self._get_json("/yf/info", {"symbol": symbol}, f"info {symbol}")
        if not isinstance(payload, dict):
            raise PermanentUpstreamError(self.name, f"unexpected info payload for {symbol}")
        return SymbolInfo(
            symbol=symbol,
            name=payload.get("name") or symbol,
            type=payload.get("type") or "unknown",
            currency=payload.get("currency") or "USD",
            exchange=payload.get("exchange") or "Unknown",
        )

    async def search_symbols(self, query: str) -> list[SymbolInfo]:
        payload = await self._get_json("/yf/search", {"q": query}, f"search {query!r}")
        if not isinstance(payload, list):
            raise PermanentUpstreamError(self.name, f"unexpected search payload for {query!r}")

        results = []
        for item in payload:
            if isinstance(item, dict) and item.get("symbol"):
                results.append(
                    SymbolInfo(
                        symbol=item["symbol"],
                        name=item.get("name") or item["symbol"],
                        type=item.get("type") or "unknown",
                        currency=item.get("currency") or "USD",
                        exchange=item.get("exchange") or "Unknown",
                    )
                )
        return results

    async def fetch_popular_symbols(self) -> list[str]:
        return get_popular_symbols()

    async def health_check(self) -> bool:
        try:
            candles = await self.fetch_candles("BTC-USD", Timeframe.D1, 5)
            return len(candles) > 0
        except Exception as e:
            logger.warning(f"{self.name} health check failed: {e}")
            return False
