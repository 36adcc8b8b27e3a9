"""
Indicator Engine Service

CONTRACT:
    Input:  IndicatorRequest (candles + IndicatorParams)
    Output: list[IndicatorResult]

RESPONSIBILITIES:
    - RSI with Wilder's smoothing
    - Stochastic %K / %D
    - Williams %R
    - Level zones and crossings
    - Candle fetch limits per timeframe

PURE PYTHON - No I/O.
Uses NumPy for calculations.
All math is deterministic and reproducible.
"""

from indicharts.services.indicators.interface import IndicatorServiceInterface
from indicharts.services.indicators.service import (
    IndicatorService,
    compute_for_params,
    compute_series,
    fetch_limit,
    get_indicator_service,
    get_zone,
)

__all__ = [
    "IndicatorServiceInterface",
    "IndicatorService",
    "compute_for_params",
    "compute_series",
    "fetch_limit",
    "get_indicator_service",
    "get_zone",
]
