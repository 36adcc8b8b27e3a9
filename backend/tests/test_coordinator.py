"""
Tests for ParameterCoordinator: indicator switching, parameter updates and
invalidation.
"""
import asyncio

import pytest

from indicharts.schemas.indicators import IndicatorParams, IndicatorType, SortMode
from indicharts.schemas.market import Timeframe
from indicharts.services.base import ValidationError
from indicharts.services.settings.coordinator import CoordinatorState, ParameterCoordinator


class InvalidationLog:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1


@pytest.fixture
def invalidations():
    return InvalidationLog()


@pytest.fixture
def coordinator(memory_store, invalidations):
    return ParameterCoordinator("markets", memory_store, on_invalidate=invalidations)


class TestSwitchIndicator:

    def test_switch_to_defaults(self, coordinator, invalidations):
        snapshot = asyncio.run(coordinator.switch_indicator(IndicatorType.STOCHASTIC))
        params = snapshot.params
        assert params.type == IndicatorType.STOCHASTIC
        assert params.period == 6
        assert params.d_period == 3
        assert (params.lower_level, params.upper_level) == (20.0, 80.0)
        assert snapshot.epoch == 1
        assert invalidations.calls == 1
        assert coordinator.state == CoordinatorState.ACTIVE

    def test_switch_persists_old_type_first(self, coordinator, memory_store):
        async def main():
            await coordinator.update_params(period=21, lower_level=25, upper_level=75)
            await coordinator.switch_indicator(IndicatorType.WILLIAMS_R)
            return (
                await memory_store.get_int("markets_rsi_period"),
                await memory_store.get_float("markets_rsi_lower_level"),
                await memory_store.get_str("markets_indicator"),
            )

        assert asyncio.run(main()) == (21, 25.0, "williams")

    def test_switch_back_restores_saved(self, coordinator):
        async def main():
            await coordinator.update_params(period=21)
            await coordinator.switch_indicator(IndicatorType.WILLIAMS_R)
            await coordinator.update_params(lower_level=-90, upper_level=-10)
            await coordinator.switch_indicator(IndicatorType.RSI)
            rsi = coordinator.params
            await coordinator.switch_indicator(IndicatorType.WILLIAMS_R)
            return rsi, coordinator.params

        rsi, williams = asyncio.run(main())
        assert rsi.period == 21
        assert (williams.lower_level, williams.upper_level) == (-90.0, -10.0)

    def test_out_of_range_saved_levels_fall_back(self, coordinator, memory_store):
        """RSI-style levels saved under the Williams keys are ignored."""
        async def main():
            await memory_store.set_float("markets_williams_lower_level", 30.0)
            await memory_store.set_float("markets_williams_upper_level", 70.0)
            await memory_store.set_int("markets_williams_period", 500)
            return await coordinator.switch_indicator("williams")

        params = asyncio.run(main()).params
        assert (params.lower_level, params.upper_level) == (-80.0, -20.0)
        assert params.period == 14

    def test_inverted_saved_levels_fall_back(self, coordinator, memory_store):
        async def main():
            await memory_store.set_float("markets_stoch_lower_level", 90.0)
            await memory_store.set_float("markets_stoch_upper_level", 10.0)
            return await coordinator.switch_indicator("stoch")

        params = asyncio.run(main()).params
        assert (params.lower_level, params.upper_level) == (20.0, 80.0)

    def test_non_finite_saved_values_fall_back(self, coordinator, memory_store):
        async def main():
            await memory_store.set_str("markets_stoch_period", "inf")
            await memory_store.set_str("markets_stoch_d_period", "-inf")
            await memory_store.set_str("markets_stoch_upper_level", "nan")
            return await coordinator.switch_indicator("stoch")

        params = asyncio.run(main()).params
        assert params == IndicatorParams.defaults_for(IndicatorType.STOCHASTIC)

    def test_same_type_is_noop(self, coordinator, invalidations):
        snapshot = asyncio.run(coordinator.switch_indicator(IndicatorType.RSI))
        assert snapshot.epoch == 0
        assert invalidations.calls == 0

    def test_dispatch_waits_for_switch(self, coordinator):
        """A dispatcher waiting on the coordinator only proceeds after the switch."""
        events = []

        async def dispatcher():
            await asyncio.sleep(0)
            await coordinator.wait_until_active()
            events.append(("dispatch", coordinator.params.type))

        async def main():
            task = asyncio.create_task(dispatcher())
            await coordinator.switch_indicator(IndicatorType.WILLIAMS_R)
            await task

        asyncio.run(main())
        assert events == [("dispatch", IndicatorType.WILLIAMS_R)]


class TestUpdateParams:

    def test_update_bumps_epoch_and_invalidates(self, coordinator, invalidations):
        snapshot = asyncio.run(coordinator.update_params(period=7))
        assert snapshot.params.period == 7
        assert snapshot.epoch == 1
        assert invalidations.calls == 1

    def test_unchanged_params_are_noop(self, coordinator, invalidations):
        snapshot = asyncio.run(coordinator.update_params(period=14))
        assert snapshot.epoch == 0
        assert invalidations.calls == 0

    @pytest.mark.parametrize(
        "changes",
        [
            {"period": 0},
            {"period": 101},
            {"lower_level": 80},
            {"upper_level": 120},
            {"lower_level": -5},
            {"d_period": 3},
        ],
    )
    def test_invalid_changes_rejected(self, coordinator, invalidations, changes):
        with pytest.raises(ValidationError):
            asyncio.run(coordinator.update_params(**changes))
        assert invalidations.calls == 0
        assert coordinator.params == IndicatorParams.defaults_for(IndicatorType.RSI)

    def test_stochastic_d_period(self, coordinator, memory_store):
        async def main():
            await coordinator.switch_indicator(IndicatorType.STOCHASTIC)
            await coordinator.update_params(d_period=5)
            return await memory_store.get_int("markets_stoch_d_period")

        assert asyncio.run(main()) == 5
        assert coordinator.params.d_period == 5


class TestUpdateSettings:

    def test_rejected_levels_leave_timeframe_untouched(
        self, coordinator, memory_store, invalidations
    ):
        before = coordinator.snapshot()

        async def main():
            with pytest.raises(ValidationError):
                await coordinator.update_settings(timeframe="1h", lower_level=90, upper_level=10)
            return (
                await memory_store.get_str("markets_timeframe"),
                await memory_store.get_float("markets_rsi_lower_level"),
            )

        stored_timeframe, stored_lower = asyncio.run(main())
        after = coordinator.snapshot()
        assert after.fingerprint == before.fingerprint
        assert after.epoch == 0
        assert after.timeframe == Timeframe.M15
        assert (stored_timeframe, stored_lower) == (None, None)
        assert invalidations.calls == 0

    def test_unknown_timeframe_leaves_params_untouched(self, coordinator, memory_store):
        async def main():
            with pytest.raises(ValidationError):
                await coordinator.update_settings(period=21, timeframe="2h")
            return await memory_store.get_int("markets_rsi_period")

        assert asyncio.run(main()) is None
        assert coordinator.params.period == 14

    def test_combined_change_invalidates_once(self, coordinator, memory_store, invalidations):
        async def main():
            snapshot = await coordinator.update_settings(period=21, timeframe="1h")
            return snapshot, await memory_store.get_str("markets_timeframe")

        snapshot, stored = asyncio.run(main())
        assert snapshot.params.period == 21
        assert snapshot.timeframe == Timeframe.H1
        assert snapshot.epoch == 1
        assert stored == "1h"
        assert invalidations.calls == 1


class TestTimeframeAndRestore:

    def test_set_timeframe(self, coordinator, memory_store, invalidations):
        async def main():
            snapshot = await coordinator.set_timeframe("4h")
            return snapshot, await memory_store.get_str("markets_timeframe")

        snapshot, stored = asyncio.run(main())
        assert snapshot.timeframe == Timeframe.H4
        assert stored == "4h"
        assert invalidations.calls == 1

    def test_unknown_timeframe(self, coordinator):
        with pytest.raises(ValidationError):
            asyncio.run(coordinator.set_timeframe("2h"))

    def test_load_saved(self, memory_store):
        async def main():
            await memory_store.set_str("watchlist_indicator", "stoch")
            await memory_store.set_str("watchlist_timeframe", "1d")
            await memory_store.set_int("watchlist_stoch_period", 9)
            await memory_store.set_str("watchlist_sort_order", "descending")
            coordinator = ParameterCoordinator("watchlist", memory_store)
            snapshot = await coordinator.load_saved()
            return snapshot, await coordinator.load_sort_mode()

        snapshot, mode = asyncio.run(main())
        assert snapshot.params.type == IndicatorType.STOCHASTIC
        assert snapshot.params.period == 9
        assert snapshot.timeframe == Timeframe.D1
        assert mode == SortMode.DESCENDING

    def test_namespaces_are_independent(self, memory_store):
        async def main():
            markets = ParameterCoordinator("markets", memory_store)
            watchlist = ParameterCoordinator("watchlist", memory_store)
            await markets.update_params(period=30)
            await watchlist.load_saved()
            return watchlist.params.period

        assert asyncio.run(main()) == 14

    def test_fingerprint_changes_with_epoch(self, coordinator):
        before = coordinator.snapshot().fingerprint
        coordinator.bump_epoch()
        assert coordinator.snapshot().fingerprint != before
