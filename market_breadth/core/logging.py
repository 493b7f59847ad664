"""JSON-lines logging on stdout, tagged with the emitting service."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

_RESERVED = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys())
_CONFIGURED_FLAG = "_market_breadth_configured"


class JsonFormatter(logging.Formatter):
    """Serialize log records as compact JSON lines; ``extra=`` fields land under ``context``."""

    def __init__(self, service: str | None = None) -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.service:
            payload["service"] = self.service

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED and not key.startswith("_")
        }
        if context:
            payload["context"] = context

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Bars and snapshots carry datetimes; stringify anything json cannot encode.
        return json.dumps(payload, ensure_ascii=True, separators=(",", ":"), default=str)


def configure_logging(level: str = "INFO", service: str | None = None) -> None:
    """Route the root logger to stdout as JSON; later calls are no-ops."""

    root = logging.getLogger()
    if getattr(root, _CONFIGURED_FLAG, False):
        return

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonFormatter(service=service))
    root.handlers[:] = [handler]
    root.setLevel(level.upper())
    setattr(root, _CONFIGURED_FLAG, True)
