"""Universal social-media downloader: CLI and HTTP API over a third-party resolver."""

from __future__ import annotations

__version__ = "1.0.0"

__all__ = ["__version__"]
