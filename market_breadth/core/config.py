"""Environment-driven settings shared by all services to keep runtime behavior deterministic."""

from functools import lru_cache
from typing import Callable

from pydantic_settings import BaseSettings, SettingsConfigDict

from market_breadth.core.types import (
    DEFAULT_DEADBAND_PCT,
    DEFAULT_INSTRUMENTS,
    TIMEFRAME_KEYS,
    BreadthInputs,
    Instrument,
)


class Settings(BaseSettings):
    """Simple application settings loaded from environment variables or a local .env file."""

    APP_NAME: str = "Market Breadth"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    VERSION: str = "0.1.0"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    YAHOO_CHART_URL: str = "https://query1.finance.yahoo.com/v8/finance/chart"
    YAHOO_USER_AGENT: str = "Mozilla/5.0 (compatible; MarketBreadthBot/1.0)"
    QUOTE_TIMEOUT_S: float = 10.0
    BREADTH_INSTRUMENTS: str = "NIFTY,BANK,N500,MID,SMALL,MICRO"
    BREADTH_TIMEFRAMES: str = "daily,hourly,intraday"
    MA_LENGTH: int = 50
    DEADBAND_PCT: float = DEFAULT_DEADBAND_PCT
    INSTRUMENT_WEIGHTS: str = ""
    TIMEFRAME_WEIGHTS: str = ""
    BREADTH_REFRESH_S: float = 60.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def instruments(self) -> tuple[Instrument, ...]:
        """Return the tracked instruments in configured order."""

        keys = self._split_csv(self.BREADTH_INSTRUMENTS, transform=str.upper)
        unknown = [key for key in keys if key not in DEFAULT_INSTRUMENTS]
        if unknown:
            raise ValueError(f"unknown instrument keys: {', '.join(unknown)}")
        return tuple(DEFAULT_INSTRUMENTS[key] for key in keys)

    def enabled_timeframes(self) -> frozenset[str]:
        """Return the enabled timeframe keys from BREADTH_TIMEFRAMES."""

        keys = self._split_csv(self.BREADTH_TIMEFRAMES, transform=str.lower)
        unknown = [key for key in keys if key not in TIMEFRAME_KEYS]
        if unknown:
            raise ValueError(f"unknown timeframe keys: {', '.join(unknown)}")
        return frozenset(keys)

    def instrument_weights(self) -> dict[str, float]:
        """Return configured instrument weights; empty means equal weighting."""

        return self._split_weights(self.INSTRUMENT_WEIGHTS, transform=str.upper)

    def timeframe_weights(self) -> dict[str, float]:
        """Return timeframe weight overrides keyed by timeframe key."""

        weights = self._split_weights(self.TIMEFRAME_WEIGHTS, transform=str.lower)
        unknown = [key for key in weights if key not in TIMEFRAME_KEYS]
        if unknown:
            raise ValueError(f"unknown timeframe keys: {', '.join(unknown)}")
        return weights

    @staticmethod
    def _split_csv(value: str, transform: Callable[[str], str]) -> tuple[str, ...]:
        """Split comma-separated values while removing empty entries and duplicates."""

        items: list[str] = []
        seen: set[str] = set()

        for raw in value.split(","):
            item = transform(raw.strip())
            if not item or item in seen:
                continue
            seen.add(item)
            items.append(item)

        return tuple(items)

    @classmethod
    def _split_weights(
        cls, value: str, transform: Callable[[str], str]
    ) -> dict[str, float]:
        """Parse ``KEY=weight`` pairs; later duplicates are ignored like in ``_split_csv``."""

        weights: dict[str, float] = {}
        for item in cls._split_csv(value, transform=str.strip):
            key, sep, raw_weight = item.partition("=")
            key = transform(key.strip())
            if not sep or not key:
                raise ValueError(f"invalid weight entry: {item!r}")
            if key in weights:
                continue
            try:
                weight = float(raw_weight)
            except ValueError as exc:
                raise ValueError(f"invalid weight for {key}: {raw_weight!r}") from exc
            if weight < 0.0:
                raise ValueError(f"weight for {key} must be non-negative, got {weight}")
            weights[key] = weight
        return weights


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings to avoid repeated environment parsing."""

    return Settings()


def build_inputs(settings: Settings) -> BreadthInputs:
    """Translate settings into breadth inputs, validating them once at startup."""

    return BreadthInputs(
        window_length=settings.MA_LENGTH,
        enabled=settings.enabled_timeframes(),
        instrument_weights=settings.instrument_weights(),
        timeframe_weights=settings.timeframe_weights(),
        deadband_pct=max(0.0, settings.DEADBAND_PCT),
    )
