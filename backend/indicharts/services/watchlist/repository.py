"""
Watchlist Repository

Ordered symbol membership persisted in SQLite. The indicator board only
ever sees the ordered symbol list.
"""

import logging
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from indicharts.core.config import settings
from indicharts.db.models import WatchlistItem, utc_now
from indicharts.services.base import DuplicateSymbolError, ValidationError, WatchlistFullError

logger = logging.getLogger(__name__)

SERVICE_NAME = "Watchlist"


def normalize_symbol(symbol: str) -> str:
    symbol = (symbol or "").strip().upper()
    if not symbol:
        raise ValidationError(SERVICE_NAME, "symbol must not be empty")
    return symbol


async def list_items(session: AsyncSession) -> list[WatchlistItem]:
    """All items in insertion order."""
    result = await session.execute(
        select(WatchlistItem).order_by(WatchlistItem.created_at, WatchlistItem.id)
    )
    return list(result.scalars().all())


async def list_symbols(session: AsyncSession) -> list[str]:
    return [item.symbol for item in await list_items(session)]


async def add_item(
    session: AsyncSession,
    symbol: str,
    max_items: Optional[int] = None,
) -> WatchlistItem:
    """
    Append a symbol.

    Raises:
        DuplicateSymbolError: symbol already present
        WatchlistFullError: max_items reached
    """
    symbol = normalize_symbol(symbol)
    max_items = max_items or settings.max_watchlist_items

    existing = await session.execute(select(WatchlistItem).where(WatchlistItem.symbol == symbol))
    if existing.scalar_one_or_none() is not None:
        raise DuplicateSymbolError(SERVICE_NAME, f"{symbol} is already in the watchlist")

    count = await session.scalar(select(func.count()).select_from(WatchlistItem))
    if count >= max_items:
        raise WatchlistFullError(
            SERVICE_NAME,
            f"watchlist is full ({max_items} symbols)",
            {"max_items": max_items},
        )

    item = WatchlistItem(symbol=symbol, created_at=utc_now())
    session.add(item)
    await session.flush()
    logger.info(f"Added {symbol} to watchlist")
    return item


async def remove_item(session: AsyncSession, symbol: str) -> bool:
    """Remove a symbol. Returns False when it was not present."""
    symbol = normalize_symbol(symbol)
    result = await session.execute(delete(WatchlistItem).where(WatchlistItem.symbol == symbol))
    await session.flush()
    removed = result.rowcount > 0
    if removed:
        logger.info(f"Removed {symbol} from watchlist")
    return removed


async def replace_all(session: AsyncSession, symbols: list[str]) -> list[WatchlistItem]:
    """
    Replace the whole watchlist, keeping the given order.
    Duplicates are collapsed; the list is cut at the item limit.
    """
    ordered: list[str] = []
    for symbol in symbols:
        symbol = normalize_symbol(symbol)
        if symbol not in ordered:
            ordered.append(symbol)
    if len(ordered) > settings.max_watchlist_items:
        logger.warning(
            f"Watchlist import truncated from {len(ordered)} to {settings.max_watchlist_items}"
        )
        ordered = ordered[:settings.max_watchlist_items]

    await session.execute(delete(WatchlistItem))
    now = utc_now()
    items = [WatchlistItem(symbol=symbol, created_at=now) for symbol in ordered]
    session.add_all(items)
    await session.flush()
    return items
