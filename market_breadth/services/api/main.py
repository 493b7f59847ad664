"""FastAPI service exposing quote proxy endpoints and the breadth snapshot."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

import httpx
from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from market_breadth.core.breadth import compute_breadth, snapshot_to_dict
from market_breadth.core.config import build_inputs, get_settings
from market_breadth.core.logging import configure_logging
from market_breadth.core.types import TIMEFRAME_KEYS, BreadthInputs, ServiceMeta
from market_breadth.services.breadth.monitor import BreadthMonitor
from market_breadth.services.quotes.client import (
    QuoteSourceError,
    YahooChartClient,
    bar_to_dict,
    default_range,
    parse_chart_result,
)

settings = get_settings()
configure_logging(settings.LOG_LEVEL, service="api")
logger = logging.getLogger(__name__)

_DEFAULT_SYMBOL = "^NSEI"
_RAW_CHART_RANGE = "3mo"
_RAW_CHART_CACHE_CONTROL = "s-maxage=3600, stale-while-revalidate"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the shared quote client for the app's lifetime and log startup metadata."""

    app.state.quote_client = YahooChartClient.from_settings(settings)
    logger.info(
        "api_startup",
        extra={"env": settings.ENV, "version": settings.VERSION},
    )
    try:
        yield
    finally:
        await app.state.quote_client.aclose()


app = FastAPI(title=settings.APP_NAME, version=settings.VERSION, lifespan=lifespan)


def get_quote_client(request: Request) -> YahooChartClient:
    """Return the process-wide quote client opened by the lifespan handler."""

    return request.app.state.quote_client


@app.get("/health")
def health() -> dict[str, str]:
    """Return process liveness status."""

    return {"status": "ok"}


@app.get("/version")
def version() -> dict[str, str]:
    """Return application metadata from shared settings."""

    return asdict(ServiceMeta(name=settings.APP_NAME, version=settings.VERSION, env=settings.ENV))


@app.get("/api/candles")
async def candles(
    symbol: str = _DEFAULT_SYMBOL,
    interval: str = "1d",
    range_: str | None = Query(default=None, alias="range"),
    client: YahooChartClient = Depends(get_quote_client),
) -> Response:
    """Proxy one chart request and return normalized candles."""

    range_ = range_ or default_range(interval)
    try:
        result = await client.fetch_chart(symbol, interval, range_)
        bars = parse_chart_result(result) if result is not None else None
    except QuoteSourceError as exc:
        return PlainTextResponse(exc.body, status_code=exc.status_code)
    except (httpx.HTTPError, ValueError) as exc:
        logger.error(
            "candles_proxy_failed",
            extra={"symbol": symbol, "interval": interval, "error": str(exc)},
        )
        return PlainTextResponse(str(exc), status_code=500)

    if bars is None:
        return PlainTextResponse("No data", status_code=404)

    return JSONResponse(
        {
            "symbol": symbol,
            "interval": interval,
            "range": range_,
            "candles": [bar_to_dict(bar) for bar in bars],
        }
    )


@app.get("/api/yahoo")
async def yahoo_chart(
    symbol: str = _DEFAULT_SYMBOL,
    interval: str = "1d",
    client: YahooChartClient = Depends(get_quote_client),
) -> Response:
    """Pass the raw provider chart result through with CDN caching headers."""

    try:
        result = await client.fetch_chart(symbol, interval, _RAW_CHART_RANGE)
    except (QuoteSourceError, httpx.HTTPError, ValueError) as exc:
        logger.error(
            "yahoo_proxy_failed",
            extra={"symbol": symbol, "interval": interval, "error": str(exc)},
        )
        return JSONResponse({"error": str(exc)}, status_code=500)

    if result is None:
        return JSONResponse({"error": f"no chart data for {symbol}"}, status_code=500)

    return JSONResponse(result, headers={"Cache-Control": _RAW_CHART_CACHE_CONTROL})


@app.get("/api/breadth")
async def breadth(
    ma_len: int | None = Query(default=None, ge=1, le=500),
    daily: bool = True,
    hourly: bool = True,
    intraday: bool = True,
    client: YahooChartClient = Depends(get_quote_client),
) -> dict[str, Any]:
    """Fetch every tracked series and return the composite breadth reading."""

    base = build_inputs(settings)
    flags = {"daily": daily, "hourly": hourly, "intraday": intraday}
    inputs = BreadthInputs(
        window_length=ma_len or base.window_length,
        enabled=frozenset(key for key in TIMEFRAME_KEYS if flags[key] and key in base.enabled),
        instrument_weights=base.instrument_weights,
        timeframe_weights=base.timeframe_weights,
        deadband_pct=base.deadband_pct,
    )

    instruments = settings.instruments()
    series = await BreadthMonitor(client.fetch_candles, instruments).collect(inputs)
    return snapshot_to_dict(compute_breadth(series, instruments, inputs))
