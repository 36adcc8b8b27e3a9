"""
Tests for the quote proxy adapter: candle parsing and HTTP error mapping
against a local aiohttp server.
"""
import asyncio

import pytest
from aiohttp import web
from aiohttp import test_utils

from indicharts.schemas.market import Timeframe
from indicharts.services.base import (
    PermanentUpstreamError,
    RateLimitError,
    TransientUpstreamError,
)
from indicharts.services.data_ingestion.quote_proxy import (
    QuoteProxySource,
    parse_candle,
    parse_candles,
)
from indicharts.services.loader.retry import RetryPolicy


class TestParseCandle:

    def test_object_shape(self):
        candle = parse_candle(
            {"timestamp": 1700000000, "open": 1, "high": 2, "low": 0.5, "close": 1.5, "volume": 10}
        )
        assert candle.timestamp == 1700000000
        assert (candle.open, candle.high, candle.low, candle.close) == (1.0, 2.0, 0.5, 1.5)
        assert candle.volume == 10.0

    def test_array_shape(self):
        candle = parse_candle([1700000000, 1, 2, 0.5, 1.5, 10])
        assert candle.close == 1.5
        assert candle.volume == 10.0

    def test_array_without_volume(self):
        candle = parse_candle([1700000000, 1, 2, 0.5, 1.5])
        assert candle.volume == 0.0

    def test_millisecond_timestamps(self):
        candle = parse_candle([1700000000000, 1, 2, 0.5, 1.5])
        assert candle.timestamp == 1700000000

    @pytest.mark.parametrize(
        "raw",
        [
            {"timestamp": 1, "open": 1, "high": 2, "low": 0.5},
            [1700000000, 1, 2],
            [1700000000, 1, 0.5, 2, 1.5],
            [1700000000, 1, 2, 0.5, 0],
            [1700000000, None, 2, 0.5, 1.5],
            [1700000000, "x", 2, 0.5, 1.5],
            "bar",
        ],
    )
    def test_malformed_entries(self, raw):
        assert parse_candle(raw) is None


class TestParseCandles:

    def test_sorted_and_trimmed(self):
        payload = [
            [1700000300, 1, 2, 0.5, 1.3],
            [1700000000, 1, 2, 0.5, 1.0],
            "junk",
            [1700000200, 1, 2, 0.5, 1.2],
            [1700000100, 1, 2, 0.5, 1.1],
        ]
        candles = parse_candles(payload, limit=3)
        assert [c.close for c in candles] == [1.1, 1.2, 1.3]

    def test_mixed_shapes(self):
        payload = [
            {"timestamp": 1700000000, "open": 1, "high": 2, "low": 0.5, "close": 1.0},
            [1700000100, 1, 2, 0.5, 1.1],
        ]
        assert len(parse_candles(payload)) == 2


def _candle_rows(n):
    return [[1700000000 + i * 900, 1, 2, 0.5, 1 + i * 0.01, 100] for i in range(n)]


def run_with_server(handler, scenario):
    """Serve `handler` on /yf/* and run `scenario(source)` against it."""

    async def main():
        app = web.Application()
        app.router.add_get("/yf/{path}", handler)
        server = test_utils.TestServer(app)
        await server.start_server()
        source = QuoteProxySource(base_url=str(server.make_url("")), timeout=5)
        try:
            return await scenario(source)
        finally:
            await source.close()
            await server.close()

    return asyncio.run(main())


class TestQuoteProxySource:

    def test_fetch_candles(self):
        seen = {}

        async def handler(request):
            seen.update(request.query)
            return web.json_response(_candle_rows(40))

        candles = run_with_server(
            handler, lambda s: s.fetch_candles("BTC-USD", Timeframe.H1, 34)
        )
        assert len(candles) == 34
        assert seen == {"symbol": "BTC-USD", "tf": "1h", "limit": "34"}

    def test_empty_payload(self):
        async def handler(request):
            return web.json_response([])

        assert run_with_server(handler, lambda s: s.fetch_candles("X", Timeframe.M15, 10)) == []

    @pytest.mark.parametrize(
        "status, expected",
        [
            (429, RateLimitError),
            (500, TransientUpstreamError),
            (503, TransientUpstreamError),
            (404, PermanentUpstreamError),
            (400, PermanentUpstreamError),
        ],
    )
    def test_status_mapping(self, status, expected):
        async def handler(request):
            return web.Response(status=status, text="nope")

        with pytest.raises(expected):
            run_with_server(handler, lambda s: s.fetch_candles("X", Timeframe.M15, 10))

    @pytest.mark.parametrize(
        "message, expected, transient",
        [
            ("Too Many Requests", RateLimitError, True),
            ("error getting data for X", TransientUpstreamError, True),
            ("invalid symbol", PermanentUpstreamError, False),
        ],
    )
    def test_error_body(self, message, expected, transient):
        async def handler(request):
            return web.json_response({"error": message})

        with pytest.raises(expected) as info:
            run_with_server(handler, lambda s: s.fetch_candles("X", Timeframe.M15, 10))
        assert RetryPolicy().is_transient(info.value) is transient

    def test_non_list_payload(self):
        async def handler(request):
            return web.json_response({"candles": []})

        with pytest.raises(PermanentUpstreamError):
            run_with_server(handler, lambda s: s.fetch_candles("X", Timeframe.M15, 10))

    def test_search(self):
        async def handler(request):
            return web.json_response(
                [
                    {"symbol": "AAPL", "name": "Apple Inc.", "type": "stock", "exchange": "NASDAQ"},
                    {"name": "no symbol"},
                ]
            )

        results = run_with_server(handler, lambda s: s.search_symbols("apple"))
        assert [r.symbol for r in results] == ["AAPL"]
        assert results[0].currency == "USD"

    def test_symbol_info(self):
        seen = {}

        async def handler(request):
            seen["path"] = request.path
            seen.update(request.query)
            return web.json_response(
                {"name": "Apple Inc.", "type": "stock", "currency": "USD", "exchange": "NASDAQ"}
            )

        info = run_with_server(handler, lambda s: s.fetch_symbol_info("AAPL"))
        assert seen == {"path": "/yf/info", "symbol": "AAPL"}
        assert info.symbol == "AAPL"
        assert info.name == "Apple Inc."
        assert info.exchange == "NASDAQ"

    def test_symbol_info_fills_missing_fields(self):
        async def handler(request):
            return web.json_response({})

        info = run_with_server(handler, lambda s: s.fetch_symbol_info("XYZ"))
        assert (info.name, info.type, info.currency) == ("XYZ", "unknown", "USD")

    def test_symbol_info_non_dict_payload(self):
        async def handler(request):
            return web.json_response(["AAPL"])

        with pytest.raises(PermanentUpstreamError):
            run_with_server(handler, lambda s: s.fetch_symbol_info("AAPL"))

    def test_symbol_info_unknown_symbol(self):
        async def handler(request):
            return web.Response(status=404, text="not found")

        with pytest.raises(PermanentUpstreamError):
            run_with_server(handler, lambda s: s.fetch_symbol_info("NOPE"))
