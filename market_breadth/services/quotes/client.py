"""Yahoo Finance chart API client returning normalized bars."""

import logging
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from market_breadth.core.config import Settings
from market_breadth.core.time_utils import from_epoch_seconds
from market_breadth.core.types import Bar

logger = logging.getLogger(__name__)

_DAILY_DEFAULT_RANGE = "6mo"
_INTRADAY_DEFAULT_RANGE = "5d"


class QuoteSourceError(Exception):
    """Provider answered with a non-success status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"quote provider returned {status_code}")
        self.status_code = status_code
        self.body = body


class MalformedChartError(ValueError):
    """Provider answered 2xx with a body that is not a chart payload."""


def default_range(interval: str) -> str:
    """Lookback requested when the caller does not pass one."""

    return _DAILY_DEFAULT_RANGE if interval == "1d" else _INTRADAY_DEFAULT_RANGE


def _column(values: Any, idx: int) -> Any:
    if not isinstance(values, list) or idx >= len(values):
        return None
    return values[idx]


def _as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_time(value: Any) -> datetime | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        return from_epoch_seconds(value)
    except (OverflowError, OSError, ValueError):
        return None


def _quote_row(result: dict[str, Any]) -> dict[str, Any]:
    indicators = result.get("indicators")
    if not isinstance(indicators, dict):
        return {}
    quotes = indicators.get("quote")
    if not isinstance(quotes, list) or not quotes or not isinstance(quotes[0], dict):
        return {}
    return quotes[0]


def parse_chart_result(result: dict[str, Any]) -> list[Bar]:
    """Turn a ``chart.result[0]`` object into bars, dropping rows without a close or time."""

    timestamps = result.get("timestamp")
    if not isinstance(timestamps, list):
        return []
    quote_row = _quote_row(result)

    bars: list[Bar] = []
    for idx, ts in enumerate(timestamps):
        close = _as_float(_column(quote_row.get("close"), idx))
        time = _as_time(ts)
        if close is None or time is None:
            continue
        bars.append(
            Bar(
                time=time,
                open=_as_float(_column(quote_row.get("open"), idx)),
                high=_as_float(_column(quote_row.get("high"), idx)),
                low=_as_float(_column(quote_row.get("low"), idx)),
                close=close,
                volume=_as_float(_column(quote_row.get("volume"), idx)) or 0.0,
            )
        )
    return bars


def bar_to_dict(bar: Bar) -> dict[str, Any]:
    return {
        "time": bar.time.isoformat(),
        "open": bar.open,
        "high": bar.high,
        "low": bar.low,
        "close": bar.close,
        "volume": bar.volume,
    }


class YahooChartClient:
    """Thin async wrapper over the v8 chart endpoint; no retries."""

    def __init__(
        self,
        base_url: str,
        user_agent: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={"user-agent": user_agent},
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "YahooChartClient":
        return cls(
            base_url=settings.YAHOO_CHART_URL,
            user_agent=settings.YAHOO_USER_AGENT,
            timeout=settings.QUOTE_TIMEOUT_S,
        )

    async def fetch_chart(
        self, symbol: str, interval: str, range_: str | None = None
    ) -> dict[str, Any] | None:
        """Return the first chart result, or ``None`` when the provider has no data."""

        url = f"{self.base_url}/{quote(symbol, safe='')}"
        params = {
            "interval": interval,
            "range": range_ or default_range(interval),
            "includePrePost": "false",
        }
        response = await self._client.get(url, params=params)
        if not response.is_success:
            logger.warning(
                "quote_provider_error",
                extra={"symbol": symbol, "interval": interval, "status": response.status_code},
            )
            raise QuoteSourceError(response.status_code, response.text)

        payload = response.json()
        if not isinstance(payload, dict):
            raise MalformedChartError(f"chart payload for {symbol} is not an object")
        chart = payload.get("chart")
        if chart is None:
            return None
        if not isinstance(chart, dict):
            raise MalformedChartError(f"chart section for {symbol} is not an object")
        results = chart.get("result")
        if not results:
            return None
        if not isinstance(results, list) or not isinstance(results[0], dict):
            raise MalformedChartError(f"chart result for {symbol} is not a list of objects")
        return results[0]

    async def fetch_candles(
        self, symbol: str, interval: str, range_: str | None = None
    ) -> list[Bar]:
        """Fetch and parse bars; an empty provider result yields an empty list."""

        result = await self.fetch_chart(symbol, interval, range_)
        if result is None:
            return []
        return parse_chart_result(result)

    async def aclose(self) -> None:
        await self._client.aclose()
