"""
Markets API Endpoints

Indicator rows for the built-in market groups (crypto, indexes, forex,
commodities), loaded lazily around the client's scroll position.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from indicharts.api.deps import to_http_error
from indicharts.schemas.indicators import IndicatorBoardResponse, SortMode
from indicharts.services.base import ServiceError
from indicharts.services.board import IndicatorBoard, get_market_board

logger = logging.getLogger(__name__)

router = APIRouter()


class SortRequest(BaseModel):
    """Request to change the order of a group."""

    mode: SortMode


def _check_group(board: IndicatorBoard, group: str) -> None:
    if group not in board.groups():
        raise HTTPException(status_code=404, detail=f"Unknown market group: {group}")


@router.get("/groups")
async def list_groups(board: IndicatorBoard = Depends(get_market_board)):
    """
    List market groups with their symbols in natural (market-rank) order.
    """
    groups = board.groups()
    return {
        "groups": groups,
        "sort_modes": {name: board.sort_engine.mode(name) for name in groups},
    }


@router.get("/{group}", response_model=IndicatorBoardResponse)
async def get_group_rows(
    group: str,
    offset: Optional[float] = Query(default=None, ge=0, description="Scroll offset"),
    viewport_size: Optional[float] = Query(default=None, ge=0, description="Viewport height"),
    item_size: Optional[float] = Query(default=None, gt=0, description="Row height"),
    wait: bool = Query(default=True, description="Wait for the window to finish loading"),
    board: IndicatorBoard = Depends(get_market_board),
):
    """
    Load the visible window of a group and return its rows in sort order.

    With wait=false the load runs in the background and rows come back
    immediately with their current load state.
    """
    _check_group(board, group)
    try:
        if wait:
            await board.load_window(group, offset, viewport_size, item_size)
        else:
            board.spawn(board.load_window(group, offset, viewport_size, item_size))
            # Let the scheduler mark the window as loading before answering
            await asyncio.sleep(0)
        return board.board_response(group)
    except ServiceError as e:
        raise to_http_error(e)


@router.post("/{group}/refresh", response_model=IndicatorBoardResponse)
async def refresh_group(
    group: str,
    offset: Optional[float] = Query(default=None, ge=0),
    viewport_size: Optional[float] = Query(default=None, ge=0),
    item_size: Optional[float] = Query(default=None, gt=0),
    board: IndicatorBoard = Depends(get_market_board),
):
    """
    Drop cached results and reload the visible window.
    """
    _check_group(board, group)
    try:
        await board.refresh(group, offset, viewport_size, item_size)
        return board.board_response(group)
    except ServiceError as e:
        raise to_http_error(e)


@router.put("/{group}/sort")
async def set_sort_mode(
    group: str,
    request: SortRequest,
    board: IndicatorBoard = Depends(get_market_board),
):
    """
    Change the order of a group.

    Ascending/descending start a value-only load of the whole group in the
    background; rows without a value yet sink to the bottom.
    """
    _check_group(board, group)
    mode = await board.set_sort_mode(group, request.mode)
    return {
        "group": group,
        "mode": mode,
        "order": [row.symbol for row in board.ordered_rows(group)],
    }
