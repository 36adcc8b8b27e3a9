"""
Parameter Coordinator

Owns the indicator parameters and timeframe of one view and governs every
change to them.

States:
    ACTIVE --switch_indicator(B)--> SWITCHING --> ACTIVE (type B)

A switch runs in a fixed order, and completes before any new fetch is
dispatched:
    1. persist the current settings under the old type's keys
    2. load the new type's settings (defaults when absent or out of range)
    3. invalidate caches and sort snapshots, bump the epoch

Any other change (period, levels, dPeriod, timeframe) also invalidates
wholesale and bumps the epoch.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from indicharts.schemas.indicators import (
    MAX_PERIOD,
    MIN_PERIOD,
    IndicatorParams,
    IndicatorType,
    ParameterSnapshot,
    SortMode,
)
from indicharts.schemas.market import Timeframe
from indicharts.services.base import ValidationError
from indicharts.services.cache.parameter_store import ParameterStore, param_key

logger = logging.getLogger(__name__)

DEFAULT_TIMEFRAME = Timeframe.M15


class CoordinatorState(str, Enum):
    ACTIVE = "active"
    SWITCHING = "switching"


class ParameterCoordinator:
    """
    Settings state machine for one namespace ("markets" or "watchlist").

    `on_invalidate` is called synchronously right before the epoch moves; it
    must clear every cached record and sort snapshot.
    """

    def __init__(
        self,
        namespace: str,
        store: ParameterStore,
        on_invalidate: Optional[Callable[[], None]] = None,
    ):
        self.namespace = namespace
        self.store = store
        self._on_invalidate = on_invalidate
        self._params = IndicatorParams.defaults_for(IndicatorType.RSI)
        self._timeframe = DEFAULT_TIMEFRAME
        self._epoch = 0
        self._state = CoordinatorState.ACTIVE
        self._lock = asyncio.Lock()
        self._active = asyncio.Event()
        self._active.set()

    # ============ Current values ============

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def params(self) -> IndicatorParams:
        return self._params

    @property
    def timeframe(self) -> Timeframe:
        return self._timeframe

    @property
    def epoch(self) -> int:
        return self._epoch

    def snapshot(self) -> ParameterSnapshot:
        return ParameterSnapshot(params=self._params, timeframe=self._timeframe, epoch=self._epoch)

    async def wait_until_active(self) -> None:
        """Block dispatchers while a switch is in progress."""
        await self._active.wait()

    def _key(self, *parts: str) -> str:
        return param_key(self.namespace, *parts)

    # ============ Persistence ============

    async def save_params(self, params: IndicatorParams) -> None:
        t = params.type.value
        await self.store.set_int(self._key(t, "period"), params.period)
        await self.store.set_float(self._key(t, "lower_level"), params.lower_level)
        await self.store.set_float(self._key(t, "upper_level"), params.upper_level)
        if params.type == IndicatorType.STOCHASTIC:
            await self.store.set_int(self._key("stoch", "d_period"), params.effective_d_period)

    async def load_params(self, indicator_type: IndicatorType) -> IndicatorParams:
        """
        Saved settings for a type, falling back field by field to the type's
        defaults when a value is absent or out of range.
        """
        defaults = IndicatorParams.defaults_for(indicator_type)
        t = indicator_type.value

        period = await self.store.get_int(self._key(t, "period"))
        if period is None or not MIN_PERIOD <= period <= MAX_PERIOD:
            period = defaults.period

        low, high = indicator_type.level_range
        lower = await self.store.get_float(self._key(t, "lower_level"))
        if lower is None or not low <= lower <= high:
            lower = defaults.lower_level
        upper = await self.store.get_float(self._key(t, "upper_level"))
        if upper is None or not low <= upper <= high:
            upper = defaults.upper_level
        if lower >= upper:
            lower, upper = defaults.lower_level, defaults.upper_level

        d_period = None
        if indicator_type == IndicatorType.STOCHASTIC:
            d_period = await self.store.get_int(self._key("stoch", "d_period"))
            if d_period is None or not MIN_PERIOD <= d_period <= MAX_PERIOD:
                d_period = defaults.d_period

        return IndicatorParams(
            type=indicator_type,
            period=period,
            d_period=d_period,
            lower_level=lower,
            upper_level=upper,
        )

    async def load_saved(self) -> ParameterSnapshot:
        """Restore the last active type, its parameters and the timeframe."""
        async with self._lock:
            stored_type = await self.store.get_str(self._key("indicator"))
            try:
                indicator_type = IndicatorType.from_str(stored_type) if stored_type else IndicatorType.RSI
            except ValueError:
                logger.warning(f"[{self.namespace}] unknown stored indicator {stored_type!r}, using RSI")
                indicator_type = IndicatorType.RSI

            stored_tf = await self.store.get_str(self._key("timeframe"))
            try:
                timeframe = Timeframe(stored_tf) if stored_tf else DEFAULT_TIMEFRAME
            except ValueError:
                timeframe = DEFAULT_TIMEFRAME

            params = await self.load_params(indicator_type)
            self._apply(params, timeframe)
            logger.info(f"[{self.namespace}] settings loaded: {self.snapshot().fingerprint}")
            return self.snapshot()

    async def load_sort_mode(self) -> SortMode:
        stored = await self.store.get_str(self._key("sort_order"))
        try:
            return SortMode(stored) if stored else SortMode.NATURAL
        except ValueError:
            return SortMode.NATURAL

    async def save_sort_mode(self, mode: SortMode) -> None:
        await self.store.set_str(self._key("sort_order"), SortMode(mode).value)

    # ============ Transitions ============

    def _apply(self, params: IndicatorParams, timeframe: Timeframe) -> None:
        """Install new settings: invalidate, then move the epoch. No awaits in between."""
        self._params = params
        self._timeframe = timeframe
        if self._on_invalidate is not None:
            self._on_invalidate()
        self._epoch += 1

    async def switch_indicator(self, new_type: Union[IndicatorType, str]) -> ParameterSnapshot:
        new_type = IndicatorType.from_str(new_type) if isinstance(new_type, str) else new_type

        async with self._lock:
            old_type = self._params.type
            if new_type == old_type:
                return self.snapshot()

            self._state = CoordinatorState.SWITCHING
            self._active.clear()
            try:
                await self.save_params(self._params)
                params = await self.load_params(new_type)
                await self.store.set_str(self._key("indicator"), new_type.value)
                self._apply(params, self._timeframe)
            finally:
                self._state = CoordinatorState.ACTIVE
                self._active.set()

        logger.info(
            f"[{self.namespace}] switched {old_type.value} -> {new_type.value}: "
            f"{self.snapshot().fingerprint}"
        )
        return self.snapshot()

    def _parse_timeframe(self, timeframe: Union[Timeframe, str]) -> Timeframe:
        try:
            return Timeframe(timeframe)
        except ValueError as e:
            raise ValidationError("ParameterCoordinator", f"unknown timeframe {timeframe!r}") from e

    def _build_params(
        self,
        period: Optional[int],
        lower_level: Optional[float],
        upper_level: Optional[float],
        d_period: Optional[int],
    ) -> IndicatorParams:
        """Current parameters with the given fields replaced, validated."""
        current = self._params
        changes = {
            "period": period,
            "lower_level": lower_level,
            "upper_level": upper_level,
        }
        if current.type == IndicatorType.STOCHASTIC:
            changes["d_period"] = d_period
        elif d_period is not None:
            raise ValidationError(
                "ParameterCoordinator", "d_period only applies to the stochastic oscillator"
            )

        data = current.model_dump()
        data.update({k: v for k, v in changes.items() if v is not None})
        try:
            return IndicatorParams(**data)
        except PydanticValidationError as e:
            raise ValidationError(
                "ParameterCoordinator",
                "invalid indicator parameters",
                {"errors": e.errors(include_url=False, include_context=False)},
            ) from e

    async def update_settings(
        self,
        period: Optional[int] = None,
        lower_level: Optional[float] = None,
        upper_level: Optional[float] = None,
        d_period: Optional[int] = None,
        timeframe: Optional[Union[Timeframe, str]] = None,
    ) -> ParameterSnapshot:
        """
        Change parameters of the active type and/or the timeframe in one step.

        Everything is validated first. On ValidationError nothing is
        persisted or invalidated; otherwise the change lands with a single
        invalidation and epoch bump.
        """
        new_timeframe = self._parse_timeframe(timeframe) if timeframe is not None else None

        async with self._lock:
            params = self._build_params(period, lower_level, upper_level, d_period)
            new_timeframe = new_timeframe or self._timeframe
            if params == self._params and new_timeframe == self._timeframe:
                return self.snapshot()

            if params != self._params:
                await self.save_params(params)
            if new_timeframe != self._timeframe:
                await self.store.set_str(self._key("timeframe"), new_timeframe.value)
            self._apply(params, new_timeframe)

        logger.info(f"[{self.namespace}] settings updated: {self.snapshot().fingerprint}")
        return self.snapshot()

    async def update_params(
        self,
        period: Optional[int] = None,
        lower_level: Optional[float] = None,
        upper_level: Optional[float] = None,
        d_period: Optional[int] = None,
    ) -> ParameterSnapshot:
        """
        Change parameters of the active type.

        Raises ValidationError when the result breaks a range or ordering
        rule; nothing is persisted or invalidated in that case.
        """
        return await self.update_settings(period, lower_level, upper_level, d_period)

    async def set_timeframe(self, timeframe: Union[Timeframe, str]) -> ParameterSnapshot:
        return await self.update_settings(timeframe=timeframe)

    def bump_epoch(self) -> ParameterSnapshot:
        """Invalidate everything computed so far without changing settings."""
        self._apply(self._params, self._timeframe)
        logger.info(f"[{self.namespace}] cache reset: {self.snapshot().fingerprint}")
        return self.snapshot()
