"""
Watchlist API Endpoints

Membership is stored in SQLite; indicator rows come from the watchlist
board, which loads every member (no visibility window).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from indicharts.api.deps import to_http_error
from indicharts.db.database import get_db
from indicharts.schemas.indicators import IndicatorBoardResponse, SortMode
from indicharts.services.base import ServiceError
from indicharts.services.board import IndicatorBoard, get_watchlist_board
from indicharts.services.watchlist import repository

logger = logging.getLogger(__name__)

router = APIRouter()

GROUP = "watchlist"


class AddSymbolRequest(BaseModel):
    """Request to add a symbol to the watchlist."""

    symbol: str = Field(..., min_length=1, max_length=32)


class ReplaceWatchlistRequest(BaseModel):
    """Request to replace the whole watchlist."""

    symbols: list[str]


async def _sync_board(session: AsyncSession, board: IndicatorBoard) -> list[str]:
    symbols = await repository.list_symbols(session)
    board.set_groups({GROUP: symbols})
    return symbols


@router.get("")
async def list_watchlist(session: AsyncSession = Depends(get_db)):
    """
    List watchlist symbols in the order they were added.
    """
    items = await repository.list_items(session)
    return {"items": [item.to_dict() for item in items], "count": len(items)}


@router.post("", status_code=201)
async def add_symbol(
    request: AddSymbolRequest,
    session: AsyncSession = Depends(get_db),
    board: IndicatorBoard = Depends(get_watchlist_board),
):
    """
    Add a symbol. Rejects duplicates and a full watchlist with 409.
    """
    try:
        item = await repository.add_item(session, request.symbol)
    except ServiceError as e:
        raise to_http_error(e)
    await _sync_board(session, board)
    return item.to_dict()


@router.put("")
async def replace_watchlist(
    request: ReplaceWatchlistRequest,
    session: AsyncSession = Depends(get_db),
    board: IndicatorBoard = Depends(get_watchlist_board),
):
    """
    Replace the watchlist (import/sync). Order is kept, duplicates dropped.
    """
    try:
        items = await repository.replace_all(session, request.symbols)
    except ServiceError as e:
        raise to_http_error(e)
    await _sync_board(session, board)
    return {"items": [item.to_dict() for item in items], "count": len(items)}


@router.delete("/{symbol}")
async def remove_symbol(
    symbol: str,
    session: AsyncSession = Depends(get_db),
    board: IndicatorBoard = Depends(get_watchlist_board),
):
    """
    Remove a symbol from the watchlist.
    """
    try:
        removed = await repository.remove_item(session, symbol)
    except ServiceError as e:
        raise to_http_error(e)
    if not removed:
        raise HTTPException(status_code=404, detail=f"{symbol.upper()} is not in the watchlist")
    await _sync_board(session, board)
    return {"removed": symbol.upper()}


@router.get("/indicators", response_model=IndicatorBoardResponse)
async def get_watchlist_indicators(
    sort: Optional[SortMode] = Query(default=None, description="Change the sort mode"),
    session: AsyncSession = Depends(get_db),
    board: IndicatorBoard = Depends(get_watchlist_board),
):
    """
    Load indicator data for every watchlist member and return rows in sort order.
    """
    await _sync_board(session, board)
    try:
        if sort is not None and sort != board.sort_engine.mode(GROUP):
            await board.set_sort_mode(GROUP, sort)
        await board.load_all(GROUP)
    except ServiceError as e:
        raise to_http_error(e)
    return board.board_response(GROUP)
