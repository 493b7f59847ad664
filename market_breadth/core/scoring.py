"""Moving-average trend scoring aggregated across timeframes and instruments.

Every function here is pure: bars feed a simple moving average, the average
feeds a per-timeframe score in ``{-2..2}``, timeframe scores are weighted into
an instrument score and instrument scores into a 0-100 composite.
"""

import math
from typing import Mapping, Sequence

from market_breadth.core.types import DEFAULT_DEADBAND_PCT, DEFAULT_TIMEFRAME_WEIGHTS, Bar

BEARISH_BELOW = 40
BULLISH_FROM = 60


def compute_sma(series: Sequence[Bar], window_length: int) -> list[float | None]:
    """Return the trailing simple moving average of closes, ``None`` until the window fills."""

    if window_length < 1:
        raise ValueError(f"window_length must be >= 1, got {window_length}")

    sma: list[float | None] = [None] * len(series)
    running = 0.0
    for idx, bar in enumerate(series):
        running += bar.close
        if idx >= window_length:
            running -= series[idx - window_length].close
        if idx >= window_length - 1:
            sma[idx] = running / window_length
    return sma


def _direction(value: float, reference: float, band: float) -> int:
    if value > reference + band:
        return 1
    if value < reference - band:
        return -1
    return 0


def score_timeframe(
    series: Sequence[Bar],
    sma: Sequence[float | None],
    deadband_pct: float = DEFAULT_DEADBAND_PCT,
) -> int:
    """Score the latest bar as price position plus average slope, each in ``{-1, 0, 1}``.

    Too little history is a neutral ``0``, never an error.
    """

    if len(series) != len(sma):
        raise ValueError(
            f"series and sma lengths differ: {len(series)} != {len(sma)}"
        )
    if len(series) < 3:
        return 0

    s = sma[-1]
    s_prev = sma[-2]
    if s is None or s_prev is None:
        return 0

    band = abs(s) * deadband_pct
    pos = _direction(series[-1].close, s, band)
    slope = _direction(s, s_prev, band)
    return pos + slope


def score_instrument(
    timeframe_scores: Mapping[str, int | None],
    enabled: Mapping[str, bool],
    weights: Mapping[str, float] = DEFAULT_TIMEFRAME_WEIGHTS,
) -> float:
    """Weight and sum the available scores of enabled timeframes."""

    raw = 0.0
    for key, weight in weights.items():
        score = timeframe_scores.get(key)
        if not enabled.get(key, False) or score is None:
            continue
        raw += weight * score
    return raw


def normalize_instrument_score(
    raw: float,
    enabled: Mapping[str, bool],
    weights: Mapping[str, float] = DEFAULT_TIMEFRAME_WEIGHTS,
) -> float:
    """Scale a raw instrument score into ``[-1, 1]`` by its largest possible magnitude."""

    max_magnitude = 2.0 * sum(
        weight for key, weight in weights.items() if enabled.get(key, False)
    )
    if max_magnitude <= 0.0:
        return 0.0
    return raw / max_magnitude


def display_score(normalized: float) -> float:
    """Map a normalized score onto the 0-100 display scale."""

    return 50.0 + 50.0 * normalized


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def score_composite(
    normalized_scores: Mapping[str, float],
    instrument_weights: Mapping[str, float],
) -> int:
    """Return the weighted mean of instrument scores on the 0-100 scale.

    Only instruments present in both mappings count; a zero total weight
    reads as the neutral midpoint.
    """

    total_weight = 0.0
    weighted_sum = 0.0
    for key, normalized in normalized_scores.items():
        weight = instrument_weights.get(key)
        if weight is None:
            continue
        total_weight += weight
        weighted_sum += weight * normalized

    mean = weighted_sum / total_weight if total_weight > 0.0 else 0.0
    return _round_half_up((mean + 1.0) * 50.0)


def breadth_label(composite: float) -> str:
    """Qualitative band for a composite score."""

    if composite < BEARISH_BELOW:
        return "Bearish"
    if composite < BULLISH_FROM:
        return "Mixed"
    return "Bullish"
