"""Concurrent series collection and breadth recomputation with stale-result discard."""

import asyncio
import logging
from typing import Awaitable, Callable, Sequence

import httpx

from market_breadth.core.breadth import SeriesKey, compute_breadth
from market_breadth.core.types import (
    TIMEFRAMES,
    Bar,
    BreadthInputs,
    BreadthSnapshot,
    Instrument,
    Timeframe,
)
from market_breadth.services.quotes.client import QuoteSourceError

logger = logging.getLogger(__name__)

SeriesFetcher = Callable[[str, str, str], Awaitable[list[Bar]]]


class BreadthMonitor:
    """Keeps the latest breadth snapshot for a fixed instrument set.

    Every ``refresh`` takes a new generation; a refresh whose fetches finish
    after a newer one started is dropped instead of overwriting fresher data.
    """

    def __init__(
        self,
        fetch: SeriesFetcher,
        instruments: Sequence[Instrument],
        timeframes: Sequence[Timeframe] = TIMEFRAMES,
    ) -> None:
        self._fetch = fetch
        self.instruments = tuple(instruments)
        self.timeframes = tuple(timeframes)
        self._generation = 0
        self._latest: BreadthSnapshot | None = None
        self._last_inputs: BreadthInputs | None = None
        self._last_series: dict[SeriesKey, tuple[Bar, ...]] | None = None

    @property
    def latest(self) -> BreadthSnapshot | None:
        return self._latest

    async def _fetch_one(self, instrument: Instrument, timeframe: Timeframe) -> tuple[Bar, ...]:
        try:
            bars = await self._fetch(instrument.symbol, timeframe.interval, timeframe.range)
        except (QuoteSourceError, httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "breadth_fetch_failed",
                extra={
                    "instrument": instrument.key,
                    "symbol": instrument.symbol,
                    "interval": timeframe.interval,
                    "error": str(exc),
                },
            )
            return ()
        return tuple(bars)

    async def collect(self, inputs: BreadthInputs) -> dict[SeriesKey, tuple[Bar, ...]]:
        """Fetch every (instrument, enabled timeframe) pair concurrently."""

        pairs = [
            (inst, tf)
            for inst in self.instruments
            for tf in self.timeframes
            if tf.key in inputs.enabled
        ]
        fetched = await asyncio.gather(*(self._fetch_one(inst, tf) for inst, tf in pairs))
        return {(inst.key, tf.key): bars for (inst, tf), bars in zip(pairs, fetched)}

    async def refresh(self, inputs: BreadthInputs) -> BreadthSnapshot | None:
        """Recompute breadth from fresh series; ``None`` when superseded mid-flight."""

        self._generation += 1
        generation = self._generation
        series = await self.collect(inputs)

        if generation != self._generation:
            logger.info(
                "breadth_refresh_stale",
                extra={"generation": generation, "current_generation": self._generation},
            )
            return None

        if (
            self._latest is not None
            and inputs == self._last_inputs
            and series == self._last_series
        ):
            logger.debug("breadth_inputs_unchanged", extra={"generation": generation})
            return self._latest

        snapshot = compute_breadth(series, self.instruments, inputs)
        self._latest = snapshot
        self._last_inputs = inputs
        self._last_series = series

        empty = sorted(f"{key[0]}:{key[1]}" for key, bars in series.items() if not bars)
        logger.info(
            "breadth_refreshed",
            extra={
                "generation": generation,
                "composite": snapshot.composite,
                "label": snapshot.label,
                "empty_series": empty,
            },
        )
        return snapshot
