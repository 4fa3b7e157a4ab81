"""Entry point for the PrenivDL downloader."""

from __future__ import annotations

import json
import logging
import os
import socket
import sys
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from prenivdl.cli import main as cli_main

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RunContext:
    """Immutable metadata for a single invocation."""

    trace_id: str
    instance_id: str
    wall_clock_ns: int

    @property
    def started_at_iso(self) -> str:
        seconds = self.wall_clock_ns / 1_000_000_000
        return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def _build_run_context() -> RunContext:
    return RunContext(
        trace_id=os.getenv("PRENIVDL_TRACE_ID") or uuid.uuid4().hex,
        instance_id=os.getenv("PRENIVDL_INSTANCE_ID") or socket.gethostname(),
        wall_clock_ns=time.time_ns(),
    )


def _log_event(level: int, event: str, context: RunContext, **fields: Any) -> None:
    """Emit structured JSON logs with consistent tracing metadata."""
    payload: dict[str, Any] = {
        "event": event,
        "trace_id": context.trace_id,
        "instance_id": context.instance_id,
        "started_at": context.started_at_iso,
        **fields,
    }
    LOGGER.log(level, json.dumps(payload, default=str, separators=(",", ":")), extra={"event": event})


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and record how the invocation ended."""
    context = _build_run_context()
    started_ns = time.perf_counter_ns()
    try:
        exit_code = cli_main(argv)
    except Exception as exc:
        _log_event(
            logging.CRITICAL,
            "prenivdl.run_failed",
            context,
            error_type=type(exc).__name__,
            error_message=str(exc),
        )
        raise
    runtime_ms = (time.perf_counter_ns() - started_ns) / 1_000_000
    _log_event(logging.INFO, "prenivdl.run_completed", context, exit_code=exit_code, duration_ms=round(runtime_ms, 2))
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
