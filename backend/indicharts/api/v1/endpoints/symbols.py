"""
Symbols API Endpoints

Symbol search, the popular-symbol listing and per-symbol info.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from indicharts.api.deps import to_http_error
from indicharts.schemas.market import (
    MarketGroup,
    PopularSymbolsResponse,
    SymbolInfo,
    SymbolSearchResponse,
)
from indicharts.services.base import ExternalAPIError, PermanentUpstreamError
from indicharts.services.data_ingestion import get_candle_source
from indicharts.services.data_ingestion.interface import CandleSourceInterface
from indicharts.services.data_ingestion.symbols import get_popular_symbols, search_catalogue

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/search", response_model=SymbolSearchResponse)
async def search_symbols(
    q: str = Query(..., min_length=1, description="Ticker or name"),
    limit: int = Query(default=10, ge=1, le=50),
    source: CandleSourceInterface = Depends(get_candle_source),
):
    """
    Search symbols by ticker or name.

    Falls back to the built-in catalogue when the quote service fails.
    """
    try:
        results = await source.search_symbols(q)
    except ExternalAPIError as e:
        logger.warning(f"Symbol search failed, using catalogue: {e}")
        results = search_catalogue(q, limit)
    results = results[:limit]
    return SymbolSearchResponse(query=q, results=results, count=len(results))


@router.get("/popular", response_model=PopularSymbolsResponse)
async def popular_symbols(
    group: Optional[MarketGroup] = Query(default=None),
    source: CandleSourceInterface = Depends(get_candle_source),
):
    """
    Popular symbols for default display, optionally for one market group.
    """
    if group is not None:
        return PopularSymbolsResponse(symbols=get_popular_symbols(group), group=group)
    return PopularSymbolsResponse(symbols=await source.fetch_popular_symbols())


@router.get("/{symbol}/info", response_model=SymbolInfo)
async def symbol_info(
    symbol: str,
    source: CandleSourceInterface = Depends(get_candle_source),
):
    """
    Name, type, currency and exchange of one symbol.
    """
    try:
        return await source.fetch_symbol_info(symbol)
    except PermanentUpstreamError as e:
        raise HTTPException(status_code=404, detail={"message": e.message})
    except ExternalAPIError as e:
        raise to_http_error(e)
