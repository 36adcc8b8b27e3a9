"""
Indicator Engine Service Interface

Defines the contract for the indicator calculation layer.
"""

from abc import abstractmethod
from typing import Optional

from indicharts.services.base import BaseService
from indicharts.schemas.market import Candle
from indicharts.schemas.indicators import (
    IndicatorParams,
    IndicatorRequest,
    IndicatorResult,
)


class IndicatorServiceInterface(BaseService[IndicatorRequest, list[IndicatorResult]]):
    """
    Indicator Engine Service Contract.

    INPUT: IndicatorRequest
        - candles: OHLC candles ordered ascending by timestamp
        - params: indicator type, period, dPeriod and levels

    OUTPUT: list[IndicatorResult]
        - One point per candle past the warm-up period
        - Empty when there are not enough candles (not an error)
    """

    @property
    def name(self) -> str:
        return "IndicatorService"

    @abstractmethod
    async def execute(self, input_data: IndicatorRequest) -> list[IndicatorResult]:
        """Calculate the indicator series for one symbol."""
        pass

    @abstractmethod
    def latest_value(
        self, candles: list[Candle], params: IndicatorParams
    ) -> Optional[float]:
        """
        Calculate only the most recent indicator value.

        Used to populate sort snapshots, which need a single scalar.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Indicator service is always healthy (pure computation)."""
        pass
