"""Shared fixtures for the test suite."""

from __future__ import annotations

import tempfile
from pathlib import Path

from prenivdl.config import AppConfig


def make_config(tmp: str | Path | None = None, **overrides) -> AppConfig:
    """An ``AppConfig`` whose paths live under ``tmp`` and never touch the cwd."""
    root = Path(tmp or tempfile.mkdtemp())
    fields = {
        "output_dir": root / "out",
        "log_path": root / "logs" / "test.log",
        "api_base_url": "https://api.test/download",
    }
    fields.update(overrides)
    return AppConfig(_env_file=None, **fields)
