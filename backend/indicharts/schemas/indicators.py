"""
Indicator Schemas

Parameters, computed series and per-symbol records for the indicator engine.

Records are immutable: a recompute replaces the whole record, it never
patches one in place.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from indicharts.schemas.market import Candle, Timeframe


# =============================================================================
# ENUMS
# =============================================================================


class IndicatorType(str, Enum):
    RSI = "rsi"
    STOCHASTIC = "stoch"
    WILLIAMS_R = "williams"

    @classmethod
    def from_str(cls, value: str) -> "IndicatorType":
        """Parse a stored/requested type name, accepting legacy aliases."""
        aliases = {"wpr": cls.WILLIAMS_R, "stochastic": cls.STOCHASTIC}
        value = value.lower().strip()
        if value in aliases:
            return aliases[value]
        return cls(value)

    @property
    def display_name(self) -> str:
        return {
            IndicatorType.RSI: "RSI (Relative Strength Index)",
            IndicatorType.STOCHASTIC: "Stochastic Oscillator",
            IndicatorType.WILLIAMS_R: "Williams %R",
        }[self]

    @property
    def default_period(self) -> int:
        return {
            IndicatorType.RSI: 14,
            IndicatorType.STOCHASTIC: 6,
            IndicatorType.WILLIAMS_R: 14,
        }[self]

    @property
    def default_levels(self) -> tuple[float, float]:
        return {
            IndicatorType.RSI: (30.0, 70.0),
            IndicatorType.STOCHASTIC: (20.0, 80.0),
            IndicatorType.WILLIAMS_R: (-80.0, -20.0),
        }[self]

    @property
    def default_d_period(self) -> Optional[int]:
        return 3 if self == IndicatorType.STOCHASTIC else None

    @property
    def level_range(self) -> tuple[float, float]:
        """Inclusive range valid for lower/upper levels."""
        if self == IndicatorType.WILLIAMS_R:
            return (-100.0, 0.0)
        return (0.0, 100.0)


class IndicatorZone(str, Enum):
    BELOW = "below"
    BETWEEN = "between"
    ABOVE = "above"


class RecordStatus(str, Enum):
    OK = "ok"
    NO_DATA = "no_data"
    ERROR = "error"


class LoadState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"


class SortMode(str, Enum):
    NATURAL = "natural"
    ASCENDING = "ascending"
    DESCENDING = "descending"


# =============================================================================
# PARAMETERS
# =============================================================================


MIN_PERIOD = 1
MAX_PERIOD = 100


class IndicatorParams(BaseModel):
    """
    Indicator configuration for one view.

    Levels must sit inside the type's range (Williams %R: [-100, 0],
    everything else: [0, 100]) and lower must be strictly below upper.
    """

    model_config = ConfigDict(frozen=True)

    type: IndicatorType = IndicatorType.RSI
    period: int = Field(default=14, ge=MIN_PERIOD, le=MAX_PERIOD)
    d_period: Optional[int] = Field(default=None, ge=MIN_PERIOD, le=MAX_PERIOD)
    lower_level: float = 30.0
    upper_level: float = 70.0

    @model_validator(mode="after")
    def _check_levels(self) -> "IndicatorParams":
        low, high = self.type.level_range
        for name, level in (("lower_level", self.lower_level), ("upper_level", self.upper_level)):
            if not low <= level <= high:
                raise ValueError(f"{name}={level} outside [{low}, {high}] for {self.type.value}")
        if self.lower_level >= self.upper_level:
            raise ValueError(
                f"lower_level ({self.lower_level}) must be below upper_level ({self.upper_level})"
            )
        if self.type != IndicatorType.STOCHASTIC and self.d_period is not None:
            raise ValueError("d_period only applies to the stochastic oscillator")
        return self

    @classmethod
    def defaults_for(cls, indicator_type: IndicatorType) -> "IndicatorParams":
        lower, upper = indicator_type.default_levels
        return cls(
            type=indicator_type,
            period=indicator_type.default_period,
            d_period=indicator_type.default_d_period,
            lower_level=lower,
            upper_level=upper,
        )

    @property
    def effective_d_period(self) -> int:
        return self.d_period or 3


class ParameterSnapshot(BaseModel):
    """
    Immutable parameter set captured when a fetch is dispatched.

    `epoch` increases on every settings change; a completion whose epoch no
    longer matches the current one is stale and must be dropped.
    """

    model_config = ConfigDict(frozen=True)

    params: IndicatorParams
    timeframe: Timeframe = Timeframe.M15
    epoch: int = 0

    @property
    def fingerprint(self) -> str:
        p = self.params
        return (
            f"{p.type.value}:{p.period}:{p.d_period or '-'}:"
            f"{p.lower_level:g}:{p.upper_level:g}:{self.timeframe.value}#{self.epoch}"
        )


# =============================================================================
# RESULTS
# =============================================================================


class IndicatorResult(BaseModel):
    """One indicator point. For Stochastic, `value` is %K and `signal` is %D."""

    model_config = ConfigDict(frozen=True)

    value: float
    timestamp: int
    close: Optional[float] = None
    signal: Optional[float] = None


class SymbolIndicatorRecord(BaseModel):
    """Computed state for one symbol, owned by the symbol cache."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    status: RecordStatus = RecordStatus.OK
    current_value: Optional[float] = None
    previous_value: Optional[float] = None
    history: tuple[IndicatorResult, ...] = ()
    price: Optional[float] = None
    zone: Optional[IndicatorZone] = None
    fingerprint: str = ""
    error: Optional[str] = None

    @property
    def has_data(self) -> bool:
        return self.status == RecordStatus.OK and self.current_value is not None

    @classmethod
    def empty(
        cls,
        symbol: str,
        fingerprint: str,
        status: RecordStatus = RecordStatus.NO_DATA,
        error: Optional[str] = None,
    ) -> "SymbolIndicatorRecord":
        """Terminal record rendered as a deterministic 'no data' state."""
        return cls(symbol=symbol, status=status, fingerprint=fingerprint, error=error)


# =============================================================================
# SERVICE I/O
# =============================================================================


class IndicatorRequest(BaseModel):
    """
    Request for an indicator series.
    Sent by: Batch scheduler / API
    Received by: Indicator Service
    """

    candles: list[Candle]
    params: IndicatorParams


class IndicatorRow(BaseModel):
    """One list row as served to the UI."""

    symbol: str
    state: LoadState
    record: Optional[SymbolIndicatorRecord] = None
    sort_value: Optional[float] = None


class IndicatorBoardResponse(BaseModel):
    """Ordered rows for a group plus the parameters they were computed with."""

    group: str
    sort_mode: SortMode
    fingerprint: str
    params: IndicatorParams
    timeframe: Timeframe
    rows: list[IndicatorRow]
