"""
Indicator Board

CONTRACT:
    load_window(group, offset, viewport_size, item_size)
    refresh(group) / load_all(group)
    set_sort_mode(group, mode) / ordered_rows(group)
    switch_indicator(type) / update_params(...) / set_timeframe(tf)
"""

from indicharts.services.board.service import (
    IndicatorBoard,
    close_boards,
    get_board,
    get_market_board,
    get_watchlist_board,
)

__all__ = [
    "IndicatorBoard",
    "get_board",
    "get_market_board",
    "get_watchlist_board",
    "close_boards",
]
