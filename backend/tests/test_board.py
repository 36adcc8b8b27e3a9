"""
Tests for IndicatorBoard: window loading, sort passes, refresh and
settings changes across the cache.
"""
import asyncio
import logging

import pytest

from indicharts.schemas.indicators import IndicatorType, LoadState, RecordStatus, SortMode
from indicharts.services.base import ValidationError
from indicharts.services.board import IndicatorBoard

from tests.conftest import build_candles, zigzag

RISING = build_candles([100.0 + i for i in range(80)])
FALLING = build_candles([200.0 - i for i in range(80)])
MIXED = build_candles(zigzag(80))


@pytest.fixture
def board(fake_source, memory_store, recording_sleep):
    fake_source.script = {"UP": [RISING], "DOWN": [FALLING], "MID": [MIXED]}
    board = IndicatorBoard("watchlist", fake_source, memory_store, sleep=recording_sleep)
    board.set_groups({"custom": ["MID", "DOWN", "UP"]})
    return board


class TestLoading:

    def test_load_all(self, board):
        async def main():
            await board.start()
            await board.load_all("custom")
            return board.ordered_rows("custom")

        rows = asyncio.run(main())
        assert [r.symbol for r in rows] == ["MID", "DOWN", "UP"]
        assert all(r.state == LoadState.LOADED for r in rows)
        by_symbol = {r.symbol: r.record for r in rows}
        assert by_symbol["UP"].current_value == pytest.approx(100.0)
        assert by_symbol["DOWN"].current_value == pytest.approx(0.0)
        assert by_symbol["UP"].price == RISING[-1].close

    def test_window_without_viewport_loads_first_batch(self, fake_source, memory_store, recording_sleep):
        board = IndicatorBoard("markets", fake_source, memory_store, sleep=recording_sleep)
        board.set_groups({"many": [f"S{i}" for i in range(30)]})
        loaded = asyncio.run(board.load_window("many"))
        assert loaded == [f"S{i}" for i in range(10)]

    def test_window_from_scroll_position(self, fake_source, memory_store, recording_sleep):
        board = IndicatorBoard("markets", fake_source, memory_store, sleep=recording_sleep)
        board.set_groups({"many": [f"S{i}" for i in range(30)]})
        loaded = asyncio.run(
            board.load_window("many", offset=1400, viewport_size=700, item_size=140)
        )
        # first visible row 10: start two rows above, end five past the overscanned viewport
        assert loaded == [f"S{i}" for i in range(8, 22)]

    def test_unknown_group(self, board):
        with pytest.raises(ValidationError):
            asyncio.run(board.load_all("nope"))

    def test_refresh_reloads(self, board, fake_source):
        async def main():
            await board.load_all("custom")
            before = board.coordinator.snapshot().fingerprint
            await board.refresh("custom")
            return before

        before = asyncio.run(main())
        assert len(fake_source.calls) == 6
        assert all(
            r.record.fingerprint != before and r.state == LoadState.LOADED
            for r in board.ordered_rows("custom")
        )


class TestSorting:

    def test_descending_sort_pass(self, board, memory_store):
        async def main():
            await board.start()
            await board.set_sort_mode("custom", SortMode.DESCENDING)
            await board.wait_background()
            return board.ordered_rows("custom"), await memory_store.get_str("watchlist_sort_order")

        rows, stored = asyncio.run(main())
        assert [r.symbol for r in rows] == ["UP", "MID", "DOWN"]
        # value-only pass fills the sort snapshot, not the record cache
        assert all(r.state == LoadState.UNLOADED for r in rows)
        assert rows[0].sort_value == pytest.approx(100.0)
        assert stored == "descending"

    def test_ascending_with_missing_value_sinks(self, board, fake_source):
        fake_source.script["DOWN"] = [[]]

        async def main():
            await board.set_sort_mode("custom", "ascending")
            await board.wait_background()
            return [r.symbol for r in board.ordered_rows("custom")]

        assert asyncio.run(main()) == ["MID", "UP", "DOWN"]

    def test_natural_mode_does_not_fetch(self, board, fake_source):
        asyncio.run(board.set_sort_mode("custom", SortMode.NATURAL))
        assert fake_source.calls == []

    def test_sort_mode_restored_on_start(self, fake_source, memory_store, recording_sleep):
        async def main():
            await memory_store.set_str("watchlist_sort_order", "ascending")
            board = IndicatorBoard("watchlist", fake_source, memory_store, sleep=recording_sleep)
            board.set_groups({"watchlist": ["A"]})
            await board.start()
            await board.wait_background()
            return board.sort_engine.mode("watchlist")

        assert asyncio.run(main()) == SortMode.ASCENDING

    def test_restored_mode_fills_values(self, board, memory_store):
        async def main():
            await memory_store.set_str("watchlist_sort_order", "descending")
            await board.start()
            await board.load_all("custom")
            await board.wait_background()
            return board.ordered_rows("custom")

        rows = asyncio.run(main())
        assert [r.symbol for r in rows] == ["UP", "MID", "DOWN"]
        assert all(r.sort_value is not None for r in rows)

    def test_new_member_gets_value(self, board):
        async def main():
            await board.set_sort_mode("custom", SortMode.DESCENDING)
            await board.wait_background()
            board.set_groups({"custom": ["MID", "DOWN", "UP", "NEW"]})
            await board.load_all("custom")
            await board.wait_background()
            return {r.symbol: r.sort_value for r in board.ordered_rows("custom")}

        values = asyncio.run(main())
        assert values["NEW"] is not None
        assert set(values) == {"MID", "DOWN", "UP", "NEW"}

    def test_background_failure_is_logged(self, board, caplog):
        async def fail():
            raise RuntimeError("boom")

        async def main():
            board.spawn(fail())
            await board.wait_background()

        with caplog.at_level(logging.ERROR, logger="indicharts.services.board.service"):
            asyncio.run(main())
        assert "background task failed" in caplog.text
        assert "boom" in caplog.text


class TestSettingsChanges:

    def test_switch_drops_every_record(self, board):
        async def main():
            await board.load_all("custom")
            await board.set_sort_mode("custom", SortMode.DESCENDING)
            await board.wait_background()
            await board.switch_indicator(IndicatorType.WILLIAMS_R)
            return board.ordered_rows("custom")

        rows = asyncio.run(main())
        assert all(r.state == LoadState.UNLOADED and r.record is None for r in rows)
        assert all(r.sort_value is None for r in rows)
        assert len(board.cache) == 0

    def test_switch_keeps_value_order(self, board):
        async def main():
            await board.set_sort_mode("custom", SortMode.DESCENDING)
            await board.wait_background()
            await board.switch_indicator(IndicatorType.WILLIAMS_R)
            await board.load_all("custom")
            await board.wait_background()
            return board.ordered_rows("custom")

        rows = asyncio.run(main())
        assert [r.symbol for r in rows] == ["UP", "MID", "DOWN"]
        assert all(r.sort_value is not None and -100.0 <= r.sort_value <= 0.0 for r in rows)

    def test_param_change_refills_values(self, board, fake_source):
        async def main():
            await board.set_sort_mode("custom", SortMode.DESCENDING)
            await board.wait_background()
            await board.update_params(period=7)
            await board.wait_background()
            return board.ordered_rows("custom")

        rows = asyncio.run(main())
        assert all(r.sort_value is not None for r in rows)
        assert len(fake_source.calls) == 6

    def test_reload_after_switch_uses_new_params(self, board):
        async def main():
            await board.load_all("custom")
            await board.switch_indicator("williams")
            await board.load_all("custom")
            return board.ordered_rows("custom")

        rows = asyncio.run(main())
        fingerprint = board.coordinator.snapshot().fingerprint
        assert fingerprint.startswith("williams:14")
        for row in rows:
            assert row.record.fingerprint == fingerprint
            assert row.record.status == RecordStatus.OK
            assert -100.0 <= row.record.current_value <= 0.0

    def test_stale_load_never_lands(self, board, fake_source):
        async def main():
            fake_source.gates["UP"] = asyncio.Event()
            task = asyncio.create_task(board.load_all("custom"))
            while fake_source.calls_for("UP") == 0:
                await asyncio.sleep(0)
            await board.update_params(period=7)
            fake_source.gates["UP"].set()
            await task
            return board.cache.state("UP")

        assert asyncio.run(main()) == LoadState.UNLOADED

    def test_timeframe_change_changes_fetch(self, board, fake_source):
        async def main():
            await board.set_timeframe("1d")
            await board.load_all("custom")

        asyncio.run(main())
        assert {tf.value for _, tf, _ in fake_source.calls} == {"1d"}
