"""Runner loop tests: refresh failures are logged and the loop keeps going."""

import asyncio
import logging

from market_breadth.core.time_utils import utc_now
from market_breadth.core.types import BreadthInputs, BreadthSnapshot
from market_breadth.services.breadth.main import _refresh_loop

SNAPSHOT = BreadthSnapshot(
    instruments=(),
    composite=50,
    label="Mixed",
    window_length=5,
    enabled=("daily",),
    computed_at=utc_now(),
)


class FlakyMonitor:
    """Fails on the first refresh, succeeds on the second and then asks to stop."""

    def __init__(self, shutdown_event: asyncio.Event) -> None:
        self.shutdown_event = shutdown_event
        self.calls = 0

    async def refresh(self, inputs: BreadthInputs) -> BreadthSnapshot | None:
        self.calls += 1
        if self.calls == 1:
            raise KeyError(0)
        self.shutdown_event.set()
        return SNAPSHOT


def test_refresh_failure_does_not_stop_loop(caplog) -> None:
    """An unexpected refresh error is logged and the next interval still runs."""

    emitted: list[BreadthSnapshot] = []

    async def run() -> FlakyMonitor:
        shutdown_event = asyncio.Event()
        monitor = FlakyMonitor(shutdown_event)
        await _refresh_loop(
            monitor,
            BreadthInputs(window_length=5),
            shutdown_event,
            logging.getLogger("test.breadth"),
            refresh_s=0.01,
            emit=emitted.append,
        )
        return monitor

    with caplog.at_level(logging.WARNING, logger="test.breadth"):
        monitor = asyncio.run(run())

    assert monitor.calls == 2
    assert emitted == [SNAPSHOT]
    assert [record.getMessage() for record in caplog.records] == ["breadth_refresh_failed"]
