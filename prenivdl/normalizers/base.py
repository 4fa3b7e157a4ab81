"""Shared building blocks for the per-platform normalizers."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError

from ..core.models import DownloadVariant, MediaItem, MediaType
from ..core.utils import file_extension, is_http_url

logger = logging.getLogger(__name__)

DEFAULT_FORMATS: dict[str, str] = {"video": "mp4", "audio": "mp3", "image": "jpg"}


def make_variant(
    url: Any,
    *,
    type: MediaType,
    quality: str = "",
    resolution: Optional[str] = None,
    format: Optional[str] = None,
    size: Optional[str] = None,
) -> Optional[DownloadVariant]:
    """Build a download variant, or ``None`` if the URL is unusable.

    ``format`` is only taken as given when upstream supplied one; otherwise it
    is derived from the URL path with a per-type default.
    """
    if not is_http_url(url):
        if url:
            logger.debug("Dropping non-http download url %r", url)
        return None
    fmt = format or file_extension(url, DEFAULT_FORMATS[type])
    try:
        return DownloadVariant(
            url=url,
            quality=quality,
            resolution=resolution,
            type=type,
            format=fmt,
            size=size,
        )
    except ValidationError as exc:
        logger.debug("Dropping malformed download entry %r: %s", url, exc)
        return None


def make_item(url: Any, *, type: MediaType, thumbnail: Any = None) -> Optional[MediaItem]:
    if not is_http_url(url):
        return None
    return MediaItem(url=url, type=type, thumbnail=thumbnail if is_http_url(thumbnail) else None)


def compact(values: Iterable[Optional[Any]]) -> List[Any]:
    return [value for value in values if value is not None]


def http_or_none(value: Any) -> Optional[str]:
    return value if is_http_url(value) else None
