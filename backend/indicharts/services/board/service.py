"""
Indicator Board

One board per view ("markets", "watchlist"). Bundles the symbol cache,
batch scheduler, sort engine and parameter coordinator behind the
operations the API needs.

Flow:
    load_window -> scheduler.load_range -> source -> calculator -> cache
    set_sort_mode -> scheduler.load_values (background) -> sort engine
    ordered_rows <- sort engine order + cache records
"""

import asyncio
import logging
from typing import Optional, Union

from indicharts.schemas.indicators import (
    IndicatorBoardResponse,
    IndicatorRow,
    IndicatorType,
    ParameterSnapshot,
    SortMode,
)
from indicharts.schemas.market import MarketGroup, Timeframe
from indicharts.services.base import ValidationError
from indicharts.services.cache.parameter_store import ParameterStore, get_parameter_store
from indicharts.services.cache.symbol_cache import SymbolCache
from indicharts.services.data_ingestion import get_candle_source
from indicharts.services.data_ingestion.interface import CandleSourceInterface
from indicharts.services.data_ingestion.symbols import get_all_groups, get_natural_ranking
from indicharts.services.loader.retry import Sleep
from indicharts.services.loader.scheduler import BatchScheduler
from indicharts.services.loader.window import compute_load_window
from indicharts.services.settings.coordinator import ParameterCoordinator
from indicharts.services.sorting.engine import SortEngine

logger = logging.getLogger(__name__)

# Rows loaded when the client does not report its viewport
DEFAULT_FIRST_BATCH = 10


class IndicatorBoard:
    """
    Indicator rows for the symbol groups of one view.

    Usage:
        board = IndicatorBoard("markets", source, store)
        await board.start()
        board.set_groups(get_all_groups())
        await board.load_window("crypto", offset=0, viewport_size=800, item_size=140)
        rows = board.ordered_rows("crypto")
    """

    def __init__(
        self,
        namespace: str,
        source: CandleSourceInterface,
        store: ParameterStore,
        scheduler: Optional[BatchScheduler] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.namespace = namespace
        self.cache = SymbolCache()
        self.sort_engine = SortEngine()
        self.coordinator = ParameterCoordinator(namespace, store, on_invalidate=self._invalidate)
        if scheduler is None:
            kwargs = {"sleep": sleep} if sleep is not None else {}
            scheduler = BatchScheduler(
                source,
                self.cache,
                self.sort_engine,
                self.coordinator.snapshot,
                **kwargs,
            )
        self.scheduler = scheduler
        self._groups: dict[str, list[str]] = {}
        self._background: set[asyncio.Task] = set()

    async def start(self) -> ParameterSnapshot:
        """Restore persisted settings and sort order."""
        snapshot = await self.coordinator.load_saved()
        mode = await self.coordinator.load_sort_mode()
        for group in self._groups:
            self.sort_engine.set_mode(group, mode)
        self._resume_sort_passes()
        return snapshot

    def _invalidate(self) -> None:
        self.cache.invalidate_all()
        self.sort_engine.clear_all()
        self.scheduler.reset_value_tracking()

    # ============ Groups ============

    def set_groups(self, groups: dict[str, list[str]]) -> None:
        """Replace the symbol lists; symbols keep their given order."""
        self._groups = {name: list(symbols) for name, symbols in groups.items()}
        for name in self._groups:
            try:
                self.sort_engine.set_natural_ranking(name, get_natural_ranking(MarketGroup(name)))
            except ValueError:
                # Not a catalogue group (e.g. the watchlist): natural = list order
                self.sort_engine.set_natural_ranking(name, {})

    def groups(self) -> dict[str, list[str]]:
        return {name: list(symbols) for name, symbols in self._groups.items()}

    def symbols(self, group: str) -> list[str]:
        if group not in self._groups:
            raise ValidationError("IndicatorBoard", f"unknown group {group!r}")
        return self._groups[group]

    # ============ Loading ============

    async def load_range(self, group: str, start: int, end: int) -> list[str]:
        await self.coordinator.wait_until_active()
        symbols = self.symbols(group)
        if self.sort_engine.mode(group) != SortMode.NATURAL:
            # Members without a sort value yet (new members, fresh epoch)
            self.spawn(self.load_sort_values(group))
        return await self.scheduler.load_range(symbols, start, end)

    async def load_window(
        self,
        group: str,
        offset: Optional[float] = None,
        viewport_size: Optional[float] = None,
        item_size: Optional[float] = None,
    ) -> list[str]:
        """Load the rows visible at this scroll position, plus a margin."""
        symbols = self.symbols(group)
        if offset is None or viewport_size is None or not item_size:
            start, end = 0, min(DEFAULT_FIRST_BATCH, len(symbols))
        else:
            start, end = compute_load_window(offset, viewport_size, item_size, len(symbols))
        return await self.load_range(group, start, end)

    async def load_all(self, group: str) -> list[str]:
        """Load every member of the group; the watchlist has no visibility window."""
        return await self.load_range(group, 0, len(self.symbols(group)))

    async def refresh(
        self,
        group: str,
        offset: Optional[float] = None,
        viewport_size: Optional[float] = None,
        item_size: Optional[float] = None,
    ) -> list[str]:
        """
        Explicit user refresh: drop cached results and reload the window.

        Invalidation is wholesale, so other groups reload lazily on their
        next visit.
        """
        self.symbols(group)
        self.coordinator.bump_epoch()
        self._resume_sort_passes()
        return await self.load_window(group, offset, viewport_size, item_size)

    # ============ Sorting ============

    async def set_sort_mode(self, group: str, mode: Union[SortMode, str]) -> SortMode:
        """
        Change the order of a group. Non-natural modes start a value-only pass
        over the whole group in the background.
        """
        mode = SortMode(mode)
        symbols = self.symbols(group)
        self.sort_engine.set_mode(group, mode)
        await self.coordinator.save_sort_mode(mode)
        if mode != SortMode.NATURAL:
            self.spawn(self.load_sort_values(group))
        logger.info(f"[{self.namespace}] {group} sorted {mode.value} ({len(symbols)} symbols)")
        return mode

    async def load_sort_values(self, group: str) -> dict[str, float]:
        await self.coordinator.wait_until_active()
        return await self.scheduler.load_values(group, self.symbols(group))

    def _resume_sort_passes(self) -> None:
        """Start the value pass for every group ordered by value."""
        for group in self._groups:
            if self.sort_engine.mode(group) != SortMode.NATURAL:
                self.spawn(self.load_sort_values(group))

    def spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background_done)
        return task

    def _background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                f"[{self.namespace}] background task failed: {error!r}",
                exc_info=(type(error), error, error.__traceback__),
            )

    async def wait_background(self) -> None:
        """Await background value passes (shutdown and tests)."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def ordered_rows(self, group: str) -> list[IndicatorRow]:
        rows = []
        for symbol in self.sort_engine.order(group, self.symbols(group)):
            rows.append(
                IndicatorRow(
                    symbol=symbol,
                    state=self.cache.state(symbol),
                    record=self.cache.get(symbol),
                    sort_value=self.sort_engine.get_value(group, symbol),
                )
            )
        return rows

    def board_response(self, group: str) -> IndicatorBoardResponse:
        snapshot = self.coordinator.snapshot()
        return IndicatorBoardResponse(
            group=group,
            sort_mode=self.sort_engine.mode(group),
            fingerprint=snapshot.fingerprint,
            params=snapshot.params,
            timeframe=snapshot.timeframe,
            rows=self.ordered_rows(group),
        )

    # ============ Settings ============

    # Every transition clears the sort snapshots; value-ordered groups reload them

    async def switch_indicator(self, indicator_type: Union[IndicatorType, str]) -> ParameterSnapshot:
        return self._after_transition(await self.coordinator.switch_indicator(indicator_type))

    async def update_params(self, **changes) -> ParameterSnapshot:
        return self._after_transition(await self.coordinator.update_params(**changes))

    async def update_settings(self, **changes) -> ParameterSnapshot:
        """Parameters and timeframe together, validated before anything changes."""
        return self._after_transition(await self.coordinator.update_settings(**changes))

    async def set_timeframe(self, timeframe: Union[Timeframe, str]) -> ParameterSnapshot:
        return self._after_transition(await self.coordinator.set_timeframe(timeframe))

    def _after_transition(self, snapshot: ParameterSnapshot) -> ParameterSnapshot:
        self._resume_sort_passes()
        return snapshot

    async def close(self) -> None:
        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*list(self._background), return_exceptions=True)


# =============================================================================
# SINGLETONS
# =============================================================================


_boards: dict[str, IndicatorBoard] = {}


async def get_market_board() -> IndicatorBoard:
    """Get or create the markets board, seeded with the catalogue groups."""
    board = _boards.get("markets")
    if board is None:
        board = IndicatorBoard("markets", get_candle_source(), get_parameter_store())
        board.set_groups(get_all_groups())
        await board.start()
        _boards["markets"] = board
    return board


async def get_watchlist_board() -> IndicatorBoard:
    """Get or create the watchlist board. Members are set by the watchlist API."""
    board = _boards.get("watchlist")
    if board is None:
        board = IndicatorBoard("watchlist", get_candle_source(), get_parameter_store())
        board.set_groups({"watchlist": []})
        await board.start()
        _boards["watchlist"] = board
    return board


async def get_board(namespace: str) -> IndicatorBoard:
    if namespace == "markets":
        return await get_market_board()
    if namespace == "watchlist":
        return await get_watchlist_board()
    raise ValidationError("IndicatorBoard", f"unknown namespace {namespace!r}")


async def close_boards() -> None:
    for board in _boards.values():
        await board.close()
    _boards.clear()
