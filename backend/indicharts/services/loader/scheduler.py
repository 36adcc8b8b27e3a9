"""
Batch Scheduler

Fetch + compute orchestration for lists of symbols.

CONTRACT:
    load_range(symbols, start, end) -> list[str]       (full-history pool)
    load_values(group, symbols) -> dict[str, float]    (value-only pool)

Per-symbol pipeline (full history):
    mark loading -> fetch limit -> fetch candles (with retry)
      -> empty?        commit "no data" record
      -> failed?       commit "error" record
      -> compute series, keep last N points -> commit record
    The commit is dropped when the parameter epoch moved on since dispatch.

Every terminal outcome commits a well-formed record, so a symbol never
stays pending forever. Upstream errors stay inside the scheduler.
"""

import asyncio
import logging
from typing import Callable, Optional

from indicharts.core.config import settings
from indicharts.schemas.indicators import (
    ParameterSnapshot,
    RecordStatus,
    SymbolIndicatorRecord,
)
from indicharts.schemas.market import Candle
from indicharts.services.cache.symbol_cache import SymbolCache
from indicharts.services.data_ingestion.interface import CandleSourceInterface
from indicharts.services.indicators.service import (
    compute_for_params,
    fetch_limit,
    get_indicator_service,
    get_zone,
)
from indicharts.services.loader.pool import FetchPool
from indicharts.services.loader.retry import RetryPolicy, Sleep, call_with_retry
from indicharts.services.sorting.engine import SortEngine

logger = logging.getLogger(__name__)


class BatchScheduler:
    """
    Loads indicator data for symbols through two bounded pools.

    `current_snapshot` returns the parameters in force right now; it is read
    once at dispatch and again at commit to detect stale completions.
    """

    def __init__(
        self,
        source: CandleSourceInterface,
        cache: SymbolCache,
        sort_engine: SortEngine,
        current_snapshot: Callable[[], ParameterSnapshot],
        retry_policy: Optional[RetryPolicy] = None,
        full_pool: Optional[FetchPool] = None,
        value_pool: Optional[FetchPool] = None,
        history_points: Optional[int] = None,
        period_buffer: Optional[int] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.source = source
        self.cache = cache
        self.sort_engine = sort_engine
        self._current_snapshot = current_snapshot
        self._sleep = sleep
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=settings.max_attempts,
            base_delay_ms=settings.backoff_base_ms,
        )
        self.full_pool = full_pool or FetchPool(
            "full", settings.full_pool_size, settings.full_batch_delay_ms, sleep
        )
        self.value_pool = value_pool or FetchPool(
            "value", settings.value_pool_size, settings.value_batch_delay_ms, sleep
        )
        self.history_points = history_points or settings.history_points
        self.period_buffer = period_buffer or settings.period_buffer
        # (group, symbol) -> epoch of the value-only fetch in flight
        self._value_loading: dict[tuple[str, str], int] = {}

    def _is_current(self, snapshot: ParameterSnapshot) -> bool:
        return self._current_snapshot().epoch == snapshot.epoch

    async def _fetch(self, symbol: str, snapshot: ParameterSnapshot) -> list[Candle]:
        limit = fetch_limit(snapshot.timeframe, snapshot.params.period, self.period_buffer)
        return await call_with_retry(
            lambda: self.source.fetch_candles(symbol, snapshot.timeframe, limit),
            self.retry_policy,
            sleep=self._sleep,
            context=f"{symbol} {snapshot.timeframe.value}",
        )

    # =========================================================================
    # FULL HISTORY
    # =========================================================================

    def pending(self, symbols: list[str], start: int = 0, end: Optional[int] = None) -> list[str]:
        """Symbols in [start, end) that are neither loading nor loaded under current params."""
        fingerprint = self._current_snapshot().fingerprint
        result = []
        for symbol in symbols[max(start, 0):end]:
            if self.cache.is_loading(symbol) or self.cache.is_loaded(symbol, fingerprint):
                continue
            if symbol not in result:
                result.append(symbol)
        return result

    async def load_range(
        self, symbols: list[str], start: int = 0, end: Optional[int] = None
    ) -> list[str]:
        """
        Load every symbol in symbols[start:end] that still needs it.

        Symbols already loading, or loaded under the current fingerprint, are
        skipped. Returns the symbols that were dispatched.
        """
        snapshot = self._current_snapshot()
        to_load = self.pending(symbols, start, end)
        if not to_load:
            logger.debug(f"Nothing to load in [{start}, {end})")
            return []

        # Mark everything up front so overlapping requests see them as loading
        for symbol in to_load:
            self.cache.mark_loading(symbol, snapshot.fingerprint)

        logger.info(f"Loading {len(to_load)} symbols under {snapshot.fingerprint}")
        try:
            await self.full_pool.run(
                [lambda s=symbol: self.load_symbol(s, snapshot) for symbol in to_load]
            )
        except asyncio.CancelledError:
            # Unfinished symbols must not stay marked as loading
            for symbol in to_load:
                self.cache.clear_loading(symbol, snapshot.fingerprint)
            raise
        return to_load

    async def load_symbol(
        self, symbol: str, snapshot: ParameterSnapshot
    ) -> Optional[SymbolIndicatorRecord]:
        """
        Run the pipeline for one symbol. Returns the committed record, or
        None when the result was stale and discarded.
        """
        if not self._is_current(snapshot):
            # Queued before a settings change; never dispatch it
            logger.debug(f"Skipping stale load for {symbol} ({snapshot.fingerprint})")
            self.cache.clear_loading(symbol, snapshot.fingerprint)
            return None

        self.cache.mark_loading(symbol, snapshot.fingerprint)
        try:
            record = await self._build_record(symbol, snapshot)
        except Exception as e:
            # Anything the pipeline did not anticipate still settles the symbol
            logger.exception(f"Unexpected failure loading {symbol}: {e}")
            record = SymbolIndicatorRecord.empty(
                symbol, snapshot.fingerprint, RecordStatus.ERROR, str(e)
            )
        return self._commit(symbol, record, snapshot)

    async def _build_record(
        self, symbol: str, snapshot: ParameterSnapshot
    ) -> SymbolIndicatorRecord:
        params = snapshot.params
        try:
            candles = await self._fetch(symbol, snapshot)
        except Exception as e:
            logger.warning(f"Giving up on {symbol}: {e}")
            return SymbolIndicatorRecord.empty(
                symbol, snapshot.fingerprint, RecordStatus.ERROR, str(e)
            )

        if not candles:
            logger.info(f"No candles for {symbol} {snapshot.timeframe.value}")
            return SymbolIndicatorRecord.empty(symbol, snapshot.fingerprint)

        series = compute_for_params(candles, params)
        if not series:
            return SymbolIndicatorRecord.empty(
                symbol, snapshot.fingerprint, error=f"insufficient data ({len(candles)} candles)"
            )

        current = series[-1]
        previous = series[-2] if len(series) > 1 else None
        return SymbolIndicatorRecord(
            symbol=symbol,
            status=RecordStatus.OK,
            current_value=current.value,
            previous_value=previous.value if previous else None,
            history=tuple(series[-self.history_points:]),
            price=candles[-1].close,
            zone=get_zone(current.value, params.lower_level, params.upper_level),
            fingerprint=snapshot.fingerprint,
        )

    def _commit(
        self, symbol: str, record: SymbolIndicatorRecord, snapshot: ParameterSnapshot
    ) -> Optional[SymbolIndicatorRecord]:
        if not self._is_current(snapshot):
            logger.debug(f"Discarding stale result for {symbol} ({snapshot.fingerprint})")
            self.cache.clear_loading(symbol, snapshot.fingerprint)
            return None

        self.cache.put(symbol, record)
        return record

    # =========================================================================
    # VALUE ONLY (sort snapshot)
    # =========================================================================

    async def load_values(self, group: str, symbols: list[str]) -> dict[str, float]:
        """
        Fill the sort snapshot for `group` with the latest value per symbol.

        Skips symbols that already have a value or a fetch in flight.
        Returns the values committed by this pass.
        """
        snapshot = self._current_snapshot()
        to_load = []
        for symbol in symbols:
            key = (group, symbol)
            if key in self._value_loading or self.sort_engine.has_value(group, symbol):
                continue
            if symbol not in to_load:
                to_load.append(symbol)
        if not to_load:
            return {}

        for symbol in to_load:
            self._value_loading[(group, symbol)] = snapshot.epoch

        logger.info(f"Loading sort values for {len(to_load)} {group} symbols")
        results = await self.value_pool.run(
            [lambda s=symbol: self._load_value(group, s, snapshot) for symbol in to_load]
        )
        return {
            symbol: value
            for symbol, value in zip(to_load, results)
            if isinstance(value, float)
        }

    async def _load_value(
        self, group: str, symbol: str, snapshot: ParameterSnapshot
    ) -> Optional[float]:
        value = None
        try:
            # Jobs queued before a settings change are never dispatched
            if self._is_current(snapshot):
                candles = await self._fetch(symbol, snapshot)
                if candles:
                    value = get_indicator_service().latest_value(candles, snapshot.params)
        except Exception as e:
            logger.warning(f"No sort value for {symbol}: {e}")
        finally:
            if self._value_loading.get((group, symbol)) == snapshot.epoch:
                del self._value_loading[(group, symbol)]

        if not self._is_current(snapshot):
            logger.debug(f"Discarding stale sort value for {symbol}")
            return None
        if value is not None:
            self.sort_engine.set_value(group, symbol, value)
        return value

    def reset_value_tracking(self) -> None:
        self._value_loading.clear()
