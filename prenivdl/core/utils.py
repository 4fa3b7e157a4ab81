"""Utility helpers shared by the normalizers, link builder and streamers."""

from __future__ import annotations

import math
import re
import time
from typing import Any, Mapping, Optional
from urllib.parse import urlparse

ILLEGAL_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
HTTP_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9_-]")
KNOWN_EXTENSIONS: frozenset[str] = frozenset(
    {"mp4", "mov", "webm", "mkv", "m4v", "mp3", "m4a", "aac", "ogg", "wav", "jpg", "jpeg", "png", "webp", "gif", "heic"}
)
MAX_FILENAME_LENGTH = 50


def is_http_url(value: Any) -> bool:
    """True for absolute ``http``/``https`` URLs with a host."""
    if not isinstance(value, str) or not value.startswith(("http://", "https://")):
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def pick(*values: Any, default: Any = None) -> Any:
    """Return the first value that is present (not None and not a blank string)."""
    for value in values:
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return default


def as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> list:
    if isinstance(value, list):
        return value
    if value is None or value == "":
        return []
    return [value]


def as_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float)):
        return int(value) if value >= 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def lookup(mapping: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """First present value among ``keys`` in ``mapping`` (see :func:`pick`)."""
    return pick(*(mapping.get(key) for key in keys), default=default)


def url_of(entry: Any) -> Optional[str]:
    """Extract a usable URL from a bare string or a ``{url: ...}`` style mapping."""
    if isinstance(entry, str):
        candidate: Any = entry.strip()
    elif isinstance(entry, dict):
        candidate = lookup(entry, "url", "download_url", "downloadUrl", "src")
    else:
        candidate = None
    return candidate if is_http_url(candidate) else None


def file_extension(url: str, default: str = "mp4") -> str:
    """Lowercase extension from the URL path, or ``default`` when none is recognisable."""
    try:
        path = urlparse(url).path
    except ValueError:
        return default
    tail = path.rsplit("/", 1)[-1]
    if "." not in tail:
        return default
    ext = tail.rsplit(".", 1)[-1].lower()
    if ext == "jpeg":
        return "jpg"
    return ext if ext in KNOWN_EXTENSIONS else default


def looks_like_video(url: str) -> bool:
    lowered = url.lower()
    return ".mp4" in lowered or "video" in lowered


def sanitize_title(title: Optional[str], fallback: str = "media") -> str:
    """Filesystem-safe title for local files (CLI)."""
    cleaned = ILLEGAL_FILENAME_CHARS.sub("", title or "")
    cleaned = " ".join(cleaned.split())[:MAX_FILENAME_LENGTH].strip().rstrip(".")
    return cleaned or fallback


def sanitize_http_filename(name: Optional[str], fallback: str = "download") -> str:
    """Header-safe filename stem for ``Content-Disposition`` (server)."""
    return HTTP_FILENAME_CHARS.sub("_", name or fallback)[:MAX_FILENAME_LENGTH]


def timestamp_ms() -> int:
    return time.time_ns() // 1_000_000


def format_duration(milliseconds: Optional[int]) -> Optional[str]:
    """Render a millisecond duration as ``m:ss`` (or ``h:mm:ss``)."""
    if milliseconds is None:
        return None
    seconds = milliseconds // 1000
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_bytes(size: Optional[float]) -> str:
    if size is None:
        return "?"
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.1f} {unit}" if unit != "B" else f"{int(value)} B"
        value /= 1024
    return f"{value:.1f} GB"
