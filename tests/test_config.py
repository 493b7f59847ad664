"""Settings parsing tests for breadth configuration fields."""

import inspect

import pytest

from market_breadth.core.config import Settings, build_inputs
from market_breadth.core.scoring import score_timeframe
from market_breadth.core.types import DEFAULT_DEADBAND_PCT, BreadthInputs


def test_defaults_track_all_instruments_and_timeframes() -> None:
    """Default settings cover every built-in instrument and timeframe."""

    settings = Settings(_env_file=None)
    assert [inst.key for inst in settings.instruments()] == [
        "NIFTY",
        "BANK",
        "N500",
        "MID",
        "SMALL",
        "MICRO",
    ]
    assert settings.enabled_timeframes() == frozenset({"daily", "hourly", "intraday"})
    assert settings.instrument_weights() == {}


def test_weights_are_parsed_and_normalized() -> None:
    """Weight pairs are trimmed, case-normalized and deduplicated."""

    settings = Settings(
        _env_file=None,
        INSTRUMENT_WEIGHTS=" nifty=0.6, bank = 0.4 ,,",
        TIMEFRAME_WEIGHTS="DAILY=3",
    )
    assert settings.instrument_weights() == {"NIFTY": 0.6, "BANK": 0.4}
    assert settings.timeframe_weights() == {"daily": 3.0}


@pytest.mark.parametrize("raw", ["NIFTY", "NIFTY=abc", "NIFTY=-1", "=1"])
def test_invalid_weights_raise(raw: str) -> None:
    """Malformed or negative weights are rejected."""

    with pytest.raises(ValueError):
        Settings(_env_file=None, INSTRUMENT_WEIGHTS=raw).instrument_weights()


def test_unknown_keys_raise() -> None:
    """Unknown instruments and timeframes fail fast."""

    with pytest.raises(ValueError):
        Settings(_env_file=None, BREADTH_INSTRUMENTS="NIFTY,DOW").instruments()
    with pytest.raises(ValueError):
        Settings(_env_file=None, BREADTH_TIMEFRAMES="daily,weekly").enabled_timeframes()


def test_build_inputs_from_settings() -> None:
    """Settings translate into breadth inputs with overrides applied."""

    settings = Settings(
        _env_file=None,
        MA_LENGTH=20,
        BREADTH_TIMEFRAMES="daily,intraday",
        TIMEFRAME_WEIGHTS="intraday=0.5",
    )
    inputs = build_inputs(settings)
    assert inputs.window_length == 20
    assert inputs.enabled == frozenset({"daily", "intraday"})
    assert inputs.resolved_timeframe_weights() == {"daily": 2.0, "hourly": 1.5, "intraday": 0.5}


def test_non_positive_window_rejected() -> None:
    """A moving average needs at least one bar."""

    with pytest.raises(ValueError):
        build_inputs(Settings(_env_file=None, MA_LENGTH=0))


def test_deadband_default_is_shared() -> None:
    """Settings, breadth inputs and the scorer agree on the dead-band default."""

    assert Settings(_env_file=None).DEADBAND_PCT == DEFAULT_DEADBAND_PCT
    assert BreadthInputs().deadband_pct == DEFAULT_DEADBAND_PCT
    assert inspect.signature(score_timeframe).parameters["deadband_pct"].default == DEFAULT_DEADBAND_PCT
