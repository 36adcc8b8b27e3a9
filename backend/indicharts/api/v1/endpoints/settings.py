"""
Indicator Settings API Endpoints

Per-view indicator parameters. Every change invalidates that view's cached
results; the next load recomputes under the new parameters.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from indicharts.api.deps import board_for_namespace, to_http_error
from indicharts.schemas.indicators import MAX_PERIOD, MIN_PERIOD, IndicatorType
from indicharts.schemas.market import Timeframe
from indicharts.services.base import ServiceError
from indicharts.services.board import IndicatorBoard

router = APIRouter()


class UpdateSettingsRequest(BaseModel):
    """Request to change parameters of the active indicator. Omitted fields stay as they are."""

    period: Optional[int] = Field(default=None, ge=MIN_PERIOD, le=MAX_PERIOD)
    d_period: Optional[int] = Field(default=None, ge=MIN_PERIOD, le=MAX_PERIOD)
    lower_level: Optional[float] = None
    upper_level: Optional[float] = None
    timeframe: Optional[Timeframe] = None


class SwitchIndicatorRequest(BaseModel):
    """Request to switch the active indicator."""

    type: IndicatorType


def _settings_response(board: IndicatorBoard) -> dict:
    snapshot = board.coordinator.snapshot()
    return {
        "namespace": board.namespace,
        "state": board.coordinator.state,
        "params": snapshot.params,
        "timeframe": snapshot.timeframe,
        "fingerprint": snapshot.fingerprint,
        "display_name": snapshot.params.type.display_name,
    }


@router.get("/{namespace}")
async def get_settings(board: IndicatorBoard = Depends(board_for_namespace)):
    """
    Get the active indicator, its parameters and the timeframe.
    """
    return _settings_response(board)


@router.put("/{namespace}")
async def update_settings(
    request: UpdateSettingsRequest,
    board: IndicatorBoard = Depends(board_for_namespace),
):
    """
    Update period, %D period, levels and/or timeframe.

    Levels must lie in [0, 100] ([-100, 0] for Williams %R) with lower
    strictly below upper. A rejected request changes nothing.
    """
    try:
        await board.update_settings(
            period=request.period,
            lower_level=request.lower_level,
            upper_level=request.upper_level,
            d_period=request.d_period,
            timeframe=request.timeframe,
        )
    except ServiceError as e:
        raise to_http_error(e)
    return _settings_response(board)


@router.put("/{namespace}/indicator")
async def switch_indicator(
    request: SwitchIndicatorRequest,
    board: IndicatorBoard = Depends(board_for_namespace),
):
    """
    Switch the active indicator.

    The current parameters are saved under the old indicator and the new
    indicator's saved parameters (or its defaults) take effect.
    """
    try:
        await board.switch_indicator(request.type)
    except ServiceError as e:
        raise to_http_error(e)
    return _settings_response(board)
