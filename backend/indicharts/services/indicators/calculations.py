"""
Technical Indicator Calculations

Pure NumPy implementations of the oscillators shown in the market lists.
All math is deterministic. Every function returns an array aligned with its
input, with NaN for indices still inside the warm-up period.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional


# Values emitted when highest high == lowest low over the window
STOCHASTIC_FLAT_VALUE = 50.0
WILLIAMS_FLAT_VALUE = -50.0


@dataclass
class OHLCData:
    """OHLC arrays for calculations."""

    timestamps: np.ndarray
    opens: np.ndarray
    highs: np.ndarray
    lows: np.ndarray
    closes: np.ndarray

    def __len__(self) -> int:
        return len(self.closes)


# =============================================================================
# MOVING AVERAGES
# =============================================================================


def sma(data: np.ndarray, period: int) -> np.ndarray:
    """Simple Moving Average."""
    result = np.full(len(data), np.nan)
    if len(data) < period:
        return result

    for i in range(period - 1, len(data)):
        result[i] = np.mean(data[i - period + 1 : i + 1])
    return result


# =============================================================================
# MOMENTUM INDICATORS
# =============================================================================


def rsi(closes: np.ndarray, period: int = 14) -> np.ndarray:
    """
    Relative Strength Index with Wilder's smoothing.

    The first `period` deltas seed the average gain/loss (simple mean);
    later averages use avg = (prev * (period - 1) + current) / period.
    First defined value is at index `period`.
    """
    result = np.full(len(closes), np.nan)
    if len(closes) < period + 1:
        return result

    deltas = np.diff(closes)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = float(np.mean(gains[:period]))
    avg_loss = float(np.mean(losses[:period]))
    result[period] = _rsi_from_averages(avg_gain, avg_loss)

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        result[i + 1] = _rsi_from_averages(avg_gain, avg_loss)

    return result


def _rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return float(np.clip(100.0 - (100.0 / (1.0 + rs)), 0.0, 100.0))


def stochastic(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    k_period: int = 14,
    d_period: int = 3,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Stochastic Oscillator.

    Returns: (k, d) where %D is the SMA of %K over d_period.
    A flat window yields STOCHASTIC_FLAT_VALUE.
    """
    k = np.full(len(closes), np.nan)
    if len(closes) < k_period:
        return k, np.full(len(closes), np.nan)

    for i in range(k_period - 1, len(closes)):
        highest_high = np.max(highs[i - k_period + 1 : i + 1])
        lowest_low = np.min(lows[i - k_period + 1 : i + 1])

        if highest_high == lowest_low:
            k[i] = STOCHASTIC_FLAT_VALUE
        else:
            raw = ((closes[i] - lowest_low) / (highest_high - lowest_low)) * 100
            k[i] = np.clip(raw, 0.0, 100.0)

    d = sma(k, d_period)
    return k, d


def williams_r(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, period: int = 14
) -> np.ndarray:
    """Williams %R in [-100, 0]. A flat window yields WILLIAMS_FLAT_VALUE."""
    result = np.full(len(closes), np.nan)
    if len(closes) < period:
        return result

    for i in range(period - 1, len(closes)):
        highest_high = np.max(highs[i - period + 1 : i + 1])
        lowest_low = np.min(lows[i - period + 1 : i + 1])

        if highest_high == lowest_low:
            result[i] = WILLIAMS_FLAT_VALUE
        else:
            raw = ((highest_high - closes[i]) / (highest_high - lowest_low)) * -100
            result[i] = np.clip(raw, -100.0, 0.0)

    return result


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def get_last_valid(arr: np.ndarray) -> Optional[float]:
    """Get last non-NaN value from array."""
    valid = arr[~np.isnan(arr)]
    return float(valid[-1]) if len(valid) > 0 else None
