"""
Indicator Engine Service Implementation

Turns candle series into RSI / Stochastic / Williams %R series.
Pure NumPy calculations, no I/O.
"""

import logging
from typing import Optional, Union

import numpy as np

from indicharts.schemas.market import Candle, Timeframe
from indicharts.schemas.indicators import (
    IndicatorParams,
    IndicatorRequest,
    IndicatorResult,
    IndicatorType,
    IndicatorZone,
)
from indicharts.services.indicators.calculations import (
    OHLCData,
    get_last_valid,
    rsi,
    stochastic,
    williams_r,
)
from indicharts.services.indicators.interface import IndicatorServiceInterface

logger = logging.getLogger(__name__)


# Minimum candles per timeframe, so charts have enough history regardless of period
TIMEFRAME_CANDLE_FLOOR = {
    Timeframe.M1: 100,
    Timeframe.M5: 100,
    Timeframe.M15: 100,
    Timeframe.H1: 100,
    Timeframe.H4: 500,
    Timeframe.D1: 730,
}

DEFAULT_PERIOD_BUFFER = 20


def fetch_limit(
    timeframe: Union[Timeframe, str],
    period: int,
    buffer: int = DEFAULT_PERIOD_BUFFER,
) -> int:
    """Number of candles to request: max(period + buffer, timeframe floor)."""
    floor = TIMEFRAME_CANDLE_FLOOR.get(Timeframe(timeframe), 100)
    return max(period + buffer, floor)


def min_candles_required(indicator_type: IndicatorType, period: int, d_period: int = 3) -> int:
    """Candles needed before the first point can be emitted."""
    if indicator_type == IndicatorType.STOCHASTIC:
        return max(period + 1, period + d_period - 1)
    return period + 1


def to_arrays(candles: list[Candle]) -> OHLCData:
    """Convert candles to NumPy arrays."""
    return OHLCData(
        timestamps=np.array([c.timestamp for c in candles], dtype=np.int64),
        opens=np.array([c.open for c in candles], dtype=float),
        highs=np.array([c.high for c in candles], dtype=float),
        lows=np.array([c.low for c in candles], dtype=float),
        closes=np.array([c.close for c in candles], dtype=float),
    )


def compute_series(
    candles: list[Candle],
    indicator_type: IndicatorType,
    period: int,
    params: Optional[dict] = None,
) -> list[IndicatorResult]:
    """
    Compute an indicator series from candles ordered by timestamp.

    Args:
        candles: OHLC candles, oldest first
        indicator_type: RSI, Stochastic or Williams %R
        period: lookback period
        params: extra parameters; Stochastic reads "d_period" (default 3)

    Returns:
        One IndicatorResult per candle past the warm-up period, or an empty
        list when there are fewer than period + 1 candles.
    """
    d_period = int((params or {}).get("d_period") or 3)
    if len(candles) < min_candles_required(indicator_type, period, d_period):
        logger.debug(
            f"Insufficient data for {indicator_type.value}({period}): {len(candles)} candles"
        )
        return []

    data = to_arrays(candles)
    signal: Optional[np.ndarray] = None

    if indicator_type == IndicatorType.RSI:
        values = rsi(data.closes, period)
    elif indicator_type == IndicatorType.STOCHASTIC:
        values, signal = stochastic(data.highs, data.lows, data.closes, period, d_period)
        # Only emit points where %D is defined as well
        values = np.where(np.isnan(signal), np.nan, values)
    elif indicator_type == IndicatorType.WILLIAMS_R:
        values = williams_r(data.highs, data.lows, data.closes, period)
    else:
        raise ValueError(f"Unsupported indicator type: {indicator_type}")

    results = []
    for i, value in enumerate(values):
        if not np.isfinite(value):
            continue
        results.append(
            IndicatorResult(
                value=float(value),
                timestamp=int(data.timestamps[i]),
                close=float(data.closes[i]),
                signal=float(signal[i]) if signal is not None else None,
            )
        )
    return results


def compute_for_params(candles: list[Candle], params: IndicatorParams) -> list[IndicatorResult]:
    """compute_series driven by an IndicatorParams value."""
    extra = {"d_period": params.effective_d_period} if params.type == IndicatorType.STOCHASTIC else None
    return compute_series(candles, params.type, params.period, extra)


# =============================================================================
# LEVELS AND ZONES
# =============================================================================


def get_zone(value: float, lower_level: float, upper_level: float) -> IndicatorZone:
    """Classify a value against the lower/upper levels."""
    if value < lower_level:
        return IndicatorZone.BELOW
    if value > upper_level:
        return IndicatorZone.ABOVE
    return IndicatorZone.BETWEEN


def crossed_up(current: float, previous: float, level: float) -> bool:
    return previous <= level < current


def crossed_down(current: float, previous: float, level: float) -> bool:
    return previous >= level > current


def entered_zone(current: float, previous: float, lower: float, upper: float) -> bool:
    was_outside = previous < lower or previous > upper
    return was_outside and lower <= current <= upper


def exited_zone(current: float, previous: float, lower: float, upper: float) -> bool:
    was_inside = lower <= previous <= upper
    return was_inside and (current < lower or current > upper)


def normalize_value(value: float) -> float:
    """Round to one decimal place for display."""
    return round(value * 10) / 10


# =============================================================================
# SERVICE
# =============================================================================


class IndicatorService(IndicatorServiceInterface):
    """
    Indicator Engine Service.

    Thin async facade over compute_series so callers can treat the
    calculator like every other service.
    """

    async def execute(self, input_data: IndicatorRequest) -> list[IndicatorResult]:
        return compute_for_params(input_data.candles, input_data.params)

    def latest_value(
        self, candles: list[Candle], params: IndicatorParams
    ) -> Optional[float]:
        if len(candles) < min_candles_required(params.type, params.period, params.effective_d_period):
            return None

        data = to_arrays(candles)
        if params.type == IndicatorType.RSI:
            values = rsi(data.closes, params.period)
        elif params.type == IndicatorType.STOCHASTIC:
            values, _ = stochastic(
                data.highs, data.lows, data.closes, params.period, params.effective_d_period
            )
        else:
            values = williams_r(data.highs, data.lows, data.closes, params.period)
        return get_last_valid(values)

    async def health_check(self) -> bool:
        return True


# Singleton instance
_service_instance: Optional[IndicatorService] = None


def get_indicator_service() -> IndicatorService:
    """Get or create indicator service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = IndicatorService()
    return _service_instance
