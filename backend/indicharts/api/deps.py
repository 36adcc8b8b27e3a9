"""
Shared API dependencies.

Boards are resolved through FastAPI dependencies so tests can swap them
with `app.dependency_overrides`.
"""

from fastapi import Depends, HTTPException

from indicharts.services.base import (
    DuplicateSymbolError,
    ExternalAPIError,
    ServiceError,
    ValidationError,
    WatchlistFullError,
)
from indicharts.services.board import IndicatorBoard, get_market_board, get_watchlist_board


async def board_for_namespace(
    namespace: str,
    markets: IndicatorBoard = Depends(get_market_board),
    watchlist: IndicatorBoard = Depends(get_watchlist_board),
) -> IndicatorBoard:
    if namespace == "markets":
        return markets
    if namespace == "watchlist":
        return watchlist
    raise HTTPException(status_code=404, detail=f"Unknown settings namespace: {namespace}")


def to_http_error(error: ServiceError) -> HTTPException:
    """Map a service error to the matching HTTP status."""
    if isinstance(error, ValidationError):
        return HTTPException(status_code=422, detail={"message": error.message, **error.details})
    if isinstance(error, (DuplicateSymbolError, WatchlistFullError)):
        return HTTPException(status_code=409, detail={"message": error.message, **error.details})
    if isinstance(error, ExternalAPIError):
        return HTTPException(status_code=502, detail={"message": error.message})
    return HTTPException(status_code=500, detail={"message": error.message})
