"""
Shared fixtures: candle factories, a scripted candle source and a
recording sleep so delays are asserted without waiting.
"""

import asyncio
from typing import Optional, Union

import pytest

from indicharts.schemas.indicators import IndicatorParams, IndicatorType, ParameterSnapshot
from indicharts.schemas.market import Candle, Timeframe
from indicharts.services.cache.parameter_store import ParameterStore
from indicharts.services.data_ingestion.interface import CandleSourceInterface
from indicharts.services.data_ingestion.symbols import search_catalogue

START_TS = 1_700_000_000
STEP = 900


def build_candles(closes: list[float], start: int = START_TS, step: int = STEP) -> list[Candle]:
    """Candles with high/low one point around each close."""
    return [
        Candle(
            timestamp=start + i * step,
            open=close,
            high=close + 1.0,
            low=close - 1.0,
            close=close,
        )
        for i, close in enumerate(closes)
    ]


def zigzag(n: int, base: float = 100.0) -> list[float]:
    """Deterministic non-flat close series."""
    return [base + (i % 7) * 1.5 - (i % 3) * 2.0 + i * 0.1 for i in range(n)]


Outcome = Union[list[Candle], Exception]


class FakeCandleSource(CandleSourceInterface):
    """
    Scripted candle source.

    `script[symbol]` is a list of outcomes consumed one per call (the last
    one repeats); symbols without a script get `default` candles. Tracks
    calls and peak concurrency.
    """

    def __init__(self, default: Optional[list[Candle]] = None):
        self.default = default if default is not None else build_candles(zigzag(120))
        self.script: dict[str, list[Outcome]] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[tuple[str, Timeframe, int]] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    @property
    def name(self) -> str:
        return "Fake"

    def calls_for(self, symbol: str) -> int:
        return sum(1 for s, _, _ in self.calls if s == symbol)

    async def fetch_candles(self, symbol, timeframe, limit):
        self.calls.append((symbol, timeframe, limit))
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            gate = self.gates.get(symbol)
            if gate is not None:
                await gate.wait()
            for _ in range(3):
                await asyncio.sleep(0)

            outcomes = self.script.get(symbol)
            if not outcomes:
                return list(self.default)
            outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
            if isinstance(outcome, Exception):
                raise outcome
            return list(outcome)
        finally:
            self.in_flight -= 1

    async def search_symbols(self, query):
        return search_catalogue(query)

    async def fetch_popular_symbols(self):
        return ["BTC-USD", "ETH-USD"]


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class SnapshotHolder:
    """Mutable current-parameters provider for the scheduler."""

    def __init__(self, snapshot: Optional[ParameterSnapshot] = None):
        self.snapshot = snapshot or ParameterSnapshot(
            params=IndicatorParams.defaults_for(IndicatorType.RSI),
            timeframe=Timeframe.M15,
            epoch=1,
        )

    def __call__(self) -> ParameterSnapshot:
        return self.snapshot

    def bump(self, **changes) -> ParameterSnapshot:
        data = {"params": self.snapshot.params, "timeframe": self.snapshot.timeframe}
        data.update(changes)
        self.snapshot = ParameterSnapshot(epoch=self.snapshot.epoch + 1, **data)
        return self.snapshot


@pytest.fixture
def candles_factory():
    return build_candles


@pytest.fixture
def fake_source():
    return FakeCandleSource()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def snapshot_holder():
    return SnapshotHolder()


@pytest.fixture
def memory_store():
    """Parameter store with no Redis behind it."""
    return ParameterStore(redis_client=None)
