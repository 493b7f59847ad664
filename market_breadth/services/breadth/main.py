"""Breadth runner that refreshes the composite on an interval and emits JSON snapshots."""

import asyncio
import json
import logging
import signal
import sys
from typing import Callable

from market_breadth.core.breadth import snapshot_to_dict
from market_breadth.core.config import build_inputs, get_settings
from market_breadth.core.logging import configure_logging
from market_breadth.core.types import BreadthInputs, BreadthSnapshot
from market_breadth.services.breadth.monitor import BreadthMonitor
from market_breadth.services.quotes.client import YahooChartClient


def _emit_snapshot(snapshot: BreadthSnapshot) -> None:
    line = json.dumps(snapshot_to_dict(snapshot), ensure_ascii=True, separators=(",", ":"))
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


def _request_shutdown(
    shutdown_event: asyncio.Event, logger: logging.Logger, signal_name: str
) -> None:
    if shutdown_event.is_set():
        return
    logger.info("breadth_shutdown_signal", extra={"signal": signal_name})
    shutdown_event.set()


def _install_signal_handlers(shutdown_event: asyncio.Event, logger: logging.Logger) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(
                sig,
                _request_shutdown,
                shutdown_event,
                logger,
                sig.name,
            )
        except NotImplementedError:
            signal_name = sig.name
            signal.signal(
                sig,
                lambda *_, signal_name=signal_name: _request_shutdown(
                    shutdown_event, logger, signal_name
                ),
            )


async def _refresh_loop(
    monitor: BreadthMonitor,
    inputs: BreadthInputs,
    shutdown_event: asyncio.Event,
    logger: logging.Logger,
    refresh_s: float,
    emit: Callable[[BreadthSnapshot], None] = _emit_snapshot,
) -> None:
    while not shutdown_event.is_set():
        try:
            snapshot = await monitor.refresh(inputs)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "breadth_refresh_failed",
                extra={"error": str(exc), "retry_in_s": refresh_s},
            )
        else:
            if snapshot is not None:
                emit(snapshot)
        try:
            await asyncio.wait_for(shutdown_event.wait(), timeout=refresh_s)
        except asyncio.TimeoutError:
            pass


async def _run() -> int:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, service="breadth")
    logger = logging.getLogger(__name__)
    shutdown_event = asyncio.Event()

    try:
        instruments = settings.instruments()
        inputs = build_inputs(settings)
    except ValueError as exc:
        logger.error("breadth_invalid_config", extra={"error": str(exc)})
        return 1
    if not instruments:
        logger.error("breadth_invalid_instruments")
        return 1

    _install_signal_handlers(shutdown_event, logger)
    refresh_s = max(1.0, settings.BREADTH_REFRESH_S)
    logger.info(
        "breadth_startup",
        extra={
            "instruments": [inst.key for inst in instruments],
            "enabled": sorted(inputs.enabled),
            "window_length": inputs.window_length,
            "refresh_s": refresh_s,
        },
    )

    client = YahooChartClient.from_settings(settings)
    monitor = BreadthMonitor(client.fetch_candles, instruments)
    try:
        await _refresh_loop(monitor, inputs, shutdown_event, logger, refresh_s)
    finally:
        await client.aclose()

    logger.info("breadth_shutdown")
    return 0


def main() -> int:
    """Run the breadth refresher until interrupted."""

    try:
        return asyncio.run(_run())
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
