"""Console and JSON-file logging for the CLI and the API server."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any

from rich.logging import RichHandler

from . import __version__
from .config import AppConfig

# ``extra=`` keys copied verbatim into each JSON line when present.
STRUCTURED_FIELDS: tuple[str, ...] = ("platform", "url", "status_code", "strategy", "path", "bytes", "links")
NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")


class JsonFormatter(logging.Formatter):
    """One JSON object per line, keyed for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": getattr(record, "event", record.funcName),
            "message": record.getMessage(),
            "environment": getattr(record, "environment", "unknown"),
            "version": getattr(record, "version", __version__),
        }
        entry.update({key: record.__dict__[key] for key in STRUCTURED_FIELDS if key in record.__dict__})
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ContextFilter(logging.Filter):
    """Stamps environment, version and a default ``event`` on every record."""

    def __init__(self, environment: str) -> None:
        super().__init__()
        self.environment = environment

    def filter(self, record: logging.LogRecord) -> bool:
        record.environment = self.environment
        record.version = __version__
        if not hasattr(record, "event"):
            record.event = f"{record.module}.{record.funcName}"
        return True


def _console_handler(level: int | None) -> logging.Handler:
    handler = RichHandler(rich_tracebacks=True, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    if level is not None:
        handler.setLevel(level)
    return handler


def _file_handler(log_path: Path) -> logging.Handler:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=str(log_path),
        when="midnight",
        backupCount=14,
        utc=True,
        encoding="utf-8",
    )
    handler.setFormatter(JsonFormatter())
    return handler


def configure_logging(config: AppConfig, *, console_level: int | None = None) -> None:
    """Route the root logger to the console and to ``config.log_path``.

    The CLI passes ``console_level=logging.WARNING`` so that log lines do not
    interleave with the interactive menu; the file always gets everything.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if config.environment == "development" else logging.INFO)
    for existing in list(root.handlers):
        root.removeHandler(existing)

    context = ContextFilter(config.environment)
    for handler in (_console_handler(console_level), _file_handler(config.log_path)):
        handler.addFilter(context)
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
