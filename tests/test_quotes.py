"""Quote client tests against a mocked chart endpoint."""

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from market_breadth.services.quotes.client import (
    MalformedChartError,
    QuoteSourceError,
    YahooChartClient,
    default_range,
    parse_chart_result,
)

CHART_RESULT = {
    "meta": {"symbol": "^NSEI"},
    "timestamp": [1704067200, 1704153600, 1704240000],
    "indicators": {
        "quote": [
            {
                "open": [100.0, 101.0, None],
                "high": [102.0, 103.0, None],
                "low": [99.0, 100.0, None],
                "close": [101.0, None, 104.0],
                "volume": [1000, 1100, None],
            }
        ]
    },
}


def _client(handler) -> YahooChartClient:
    return YahooChartClient(
        base_url="https://quotes.test/v8/finance/chart/",
        user_agent="test-agent",
        transport=httpx.MockTransport(handler),
    )


def test_parse_drops_rows_without_close() -> None:
    """Null closes are dropped and missing volume becomes zero."""

    bars = parse_chart_result(CHART_RESULT)
    assert [bar.close for bar in bars] == [101.0, 104.0]
    assert bars[0].time == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert bars[1].open is None
    assert bars[1].volume == 0.0


def test_parse_tolerates_empty_result() -> None:
    """A result without quotes yields no bars."""

    assert parse_chart_result({}) == []
    assert parse_chart_result({"timestamp": [1], "indicators": {"quote": []}}) == []


def test_default_range_depends_on_interval() -> None:
    """Daily bars look back six months, intraday five days."""

    assert default_range("1d") == "6mo"
    assert default_range("15m") == "5d"


def test_fetch_candles_sends_expected_request() -> None:
    """The client requests the chart path with interval and range params."""

    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"chart": {"result": [CHART_RESULT]}})

    async def run() -> list:
        client = _client(handler)
        try:
            return await client.fetch_candles("^NSEI", "60m", "10d")
        finally:
            await client.aclose()

    bars = asyncio.run(run())
    assert len(bars) == 2
    request = seen[0]
    assert request.url.path == "/v8/finance/chart/^NSEI"
    assert request.url.params["interval"] == "60m"
    assert request.url.params["range"] == "10d"
    assert request.url.params["includePrePost"] == "false"
    assert request.headers["user-agent"] == "test-agent"


def test_fetch_chart_without_result_is_none() -> None:
    """An empty result list means no data rather than an error."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"chart": {"result": None, "error": None}})

    async def run():
        client = _client(handler)
        try:
            return await client.fetch_chart("^NSEI", "1d"), await client.fetch_candles("^NSEI", "1d")
        finally:
            await client.aclose()

    result, bars = asyncio.run(run())
    assert result is None
    assert bars == []


def test_provider_error_status_raises() -> None:
    """Non-success responses surface status and body."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, text="Too Many Requests")

    async def run() -> None:
        client = _client(handler)
        try:
            await client.fetch_chart("^NSEI", "1d")
        finally:
            await client.aclose()

    with pytest.raises(QuoteSourceError) as exc_info:
        asyncio.run(run())
    assert exc_info.value.status_code == 429
    assert exc_info.value.body == "Too Many Requests"


def test_parse_skips_non_numeric_timestamps() -> None:
    """Rows with a timestamp that is not epoch seconds are dropped."""

    result = {
        "timestamp": ["2024-01-01", None, True, 1704067200],
        "indicators": {"quote": [{"close": [1.0, 2.0, 3.0, 4.0]}]},
    }
    bars = parse_chart_result(result)
    assert [bar.close for bar in bars] == [4.0]


def test_parse_tolerates_wrongly_typed_sections() -> None:
    """Indicators that are not the expected shapes produce no bars."""

    assert parse_chart_result({"timestamp": {"0": 1}}) == []
    assert parse_chart_result({"timestamp": [1704067200], "indicators": []}) == []
    assert parse_chart_result({"timestamp": [1704067200], "indicators": {"quote": {}}}) == []


@pytest.mark.parametrize(
    "payload",
    [
        [{"chart": {}}],
        {"chart": ["result"]},
        {"chart": {"result": {"timestamp": [1704067200]}}},
        {"chart": {"result": ["not-a-result"]}},
    ],
)
def test_malformed_payload_raises(payload) -> None:
    """Bodies that are not chart payloads raise a ValueError subclass."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    async def run() -> None:
        client = _client(handler)
        try:
            await client.fetch_chart("^NSEI", "1d")
        finally:
            await client.aclose()

    with pytest.raises(MalformedChartError):
        asyncio.run(run())
