"""Logging setup for the CLI scripts."""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict

# Third-party loggers that report recoverable PDF parsing quirks at WARNING.
_CHATTY_LOGGERS = ("pypdf",)

_TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - thin wrapper
        payload: Dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S%z", time.localtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        stage = getattr(record, "stage", None)
        if stage:
            payload["stage"] = stage
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: str | None = None, structured: bool = False) -> None:
    resolved = getattr(logging, (level or "INFO").upper(), logging.INFO)
    logging.basicConfig(level=resolved, force=True)
    formatter = JsonFormatter() if structured else logging.Formatter(_TEXT_FORMAT)
    for handler in logging.getLogger().handlers:
        handler.setFormatter(formatter)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if resolved <= logging.DEBUG else logging.ERROR)
