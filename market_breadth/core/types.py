"""Shared lightweight types to keep module interfaces explicit and typed."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping


@dataclass(frozen=True, slots=True)
class ServiceMeta:
    """Metadata describing a running service instance."""

    name: str
    version: str
    env: str


@dataclass(frozen=True, slots=True)
class Bar:
    """One OHLCV observation; ``close`` is always known, the other prices may be missing."""

    time: datetime
    open: float | None
    high: float | None
    low: float | None
    close: float
    volume: float = 0.0


@dataclass(frozen=True, slots=True)
class Timeframe:
    """Sampling interval of a bar series and how it is requested from the provider."""

    key: str
    label: str
    interval: str
    range: str
    weight: float


@dataclass(frozen=True, slots=True)
class Instrument:
    """Tracked index and the provider symbol used to fetch it."""

    key: str
    title: str
    symbol: str


DAILY = Timeframe(key="daily", label="1D", interval="1d", range="6mo", weight=2.0)
HOURLY = Timeframe(key="hourly", label="60m", interval="60m", range="10d", weight=1.5)
INTRADAY = Timeframe(key="intraday", label="15m", interval="15m", range="5d", weight=1.0)

TIMEFRAMES: tuple[Timeframe, ...] = (DAILY, HOURLY, INTRADAY)
TIMEFRAME_KEYS: tuple[str, ...] = tuple(tf.key for tf in TIMEFRAMES)
DEFAULT_TIMEFRAME_WEIGHTS: Mapping[str, float] = {tf.key: tf.weight for tf in TIMEFRAMES}
DEFAULT_DEADBAND_PCT = 0.0005

# Some symbols are proxies for indices the provider does not carry directly.
DEFAULT_INSTRUMENTS: Mapping[str, Instrument] = {
    inst.key: inst
    for inst in (
        Instrument(key="NIFTY", title="NIFTY 50", symbol="^NSEI"),
        Instrument(key="BANK", title="NIFTY BANK", symbol="^NSEBANK"),
        Instrument(key="N500", title="NIFTY 500", symbol="^CRSLDX"),
        Instrument(key="MID", title="NIFTY MIDCAP", symbol="^CRSMID"),
        Instrument(key="SMALL", title="NIFTY SMALLCAP", symbol="NIFTYSMALL.NS"),
        Instrument(key="MICRO", title="NIFTY MICROCAP", symbol="SMALCAP.NS"),
    )
}


@dataclass(frozen=True, slots=True)
class BreadthInputs:
    """Every user-adjustable input the breadth computation depends on."""

    window_length: int = 50
    enabled: frozenset[str] = frozenset(TIMEFRAME_KEYS)
    instrument_weights: Mapping[str, float] = field(default_factory=dict)
    timeframe_weights: Mapping[str, float] = field(default_factory=dict)
    deadband_pct: float = DEFAULT_DEADBAND_PCT

    def __post_init__(self) -> None:
        if self.window_length < 1:
            raise ValueError(f"window_length must be >= 1, got {self.window_length}")

    def resolved_timeframe_weights(self) -> dict[str, float]:
        """Return default timeframe weights with any overrides applied."""

        return {**DEFAULT_TIMEFRAME_WEIGHTS, **self.timeframe_weights}

    def enabled_flags(self) -> dict[str, bool]:
        return {key: key in self.enabled for key in TIMEFRAME_KEYS}


@dataclass(frozen=True, slots=True)
class InstrumentBreadth:
    """Scores for one instrument at the latest evaluated bars."""

    key: str
    title: str
    symbol: str
    timeframe_scores: Mapping[str, int | None]
    raw: float
    normalized: float
    display: float


@dataclass(frozen=True, slots=True)
class BreadthSnapshot:
    """Composite breadth reading derived from one pass over all instruments."""

    instruments: tuple[InstrumentBreadth, ...]
    composite: int
    label: str
    window_length: int
    enabled: tuple[str, ...]
    computed_at: datetime
