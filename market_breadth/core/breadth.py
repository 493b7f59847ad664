"""Full breadth pass over already-fetched series."""

from datetime import datetime
from typing import Mapping, Sequence

from market_breadth.core.scoring import (
    breadth_label,
    compute_sma,
    display_score,
    normalize_instrument_score,
    score_composite,
    score_instrument,
    score_timeframe,
)
from market_breadth.core.time_utils import utc_now
from market_breadth.core.types import (
    TIMEFRAME_KEYS,
    Bar,
    BreadthInputs,
    BreadthSnapshot,
    Instrument,
    InstrumentBreadth,
)

SeriesKey = tuple[str, str]


def resolve_instrument_weights(
    instruments: Sequence[Instrument], configured: Mapping[str, float]
) -> dict[str, float]:
    """Weights per instrument key; unconfigured instruments weigh 0 unless nothing is configured."""

    if not configured:
        return {inst.key: 1.0 for inst in instruments}
    return {inst.key: configured.get(inst.key, 0.0) for inst in instruments}


def _score_series(series: Sequence[Bar] | None, inputs: BreadthInputs) -> int | None:
    if not series:
        return None
    sma = compute_sma(series, inputs.window_length)
    return score_timeframe(series, sma, deadband_pct=inputs.deadband_pct)


def score_instrument_series(
    instrument: Instrument,
    series_by_timeframe: Mapping[str, Sequence[Bar]],
    inputs: BreadthInputs,
) -> InstrumentBreadth:
    """Score every enabled timeframe of one instrument and aggregate them."""

    enabled = inputs.enabled_flags()
    weights = inputs.resolved_timeframe_weights()
    timeframe_scores: dict[str, int | None] = {}
    for key in TIMEFRAME_KEYS:
        if not enabled[key]:
            timeframe_scores[key] = None
            continue
        timeframe_scores[key] = _score_series(series_by_timeframe.get(key), inputs)

    raw = score_instrument(timeframe_scores, enabled, weights)
    normalized = normalize_instrument_score(raw, enabled, weights)
    return InstrumentBreadth(
        key=instrument.key,
        title=instrument.title,
        symbol=instrument.symbol,
        timeframe_scores=timeframe_scores,
        raw=raw,
        normalized=normalized,
        display=display_score(normalized),
    )


def compute_breadth(
    series_by_pair: Mapping[SeriesKey, Sequence[Bar]],
    instruments: Sequence[Instrument],
    inputs: BreadthInputs,
    now: datetime | None = None,
) -> BreadthSnapshot:
    """Run the scoring chain for all instruments; missing series score as neutral.

    ``series_by_pair`` is keyed by ``(instrument_key, timeframe_key)``.
    """

    results = tuple(
        score_instrument_series(
            inst,
            {
                tf_key: series_by_pair[(inst.key, tf_key)]
                for tf_key in TIMEFRAME_KEYS
                if (inst.key, tf_key) in series_by_pair
            },
            inputs,
        )
        for inst in instruments
    )
    weights = resolve_instrument_weights(instruments, inputs.instrument_weights)
    composite = score_composite({item.key: item.normalized for item in results}, weights)

    return BreadthSnapshot(
        instruments=results,
        composite=composite,
        label=breadth_label(composite),
        window_length=inputs.window_length,
        enabled=tuple(key for key in TIMEFRAME_KEYS if key in inputs.enabled),
        computed_at=now or utc_now(),
    )


def snapshot_to_dict(snapshot: BreadthSnapshot) -> dict:
    """Serialize a snapshot for JSON output."""

    return {
        "type": "breadth_snapshot",
        "computed_at": snapshot.computed_at.isoformat(),
        "window_length": snapshot.window_length,
        "enabled": list(snapshot.enabled),
        "composite": snapshot.composite,
        "label": snapshot.label,
        "instruments": [
            {
                "key": item.key,
                "title": item.title,
                "symbol": item.symbol,
                "timeframe_scores": dict(item.timeframe_scores),
                "raw": item.raw,
                "normalized": item.normalized,
                "display": item.display,
            }
            for item in snapshot.instruments
        ],
    }
