"""Instagram posts, reels and carousels."""

from __future__ import annotations

from typing import Any, List, Optional

from ..core.models import DownloadVariant, MediaItem, NormalizedMedia
from ..core.utils import as_dict, as_list, as_str, looks_like_video, lookup, url_of
from .base import compact, http_or_none, make_item, make_variant

VARIANTS: tuple[str, ...] = ("primary",)


def _entries(data: Any) -> List[Any]:
    if isinstance(data, list):
        return data
    payload = as_dict(data)
    for key in ("media", "result", "items"):
        if isinstance(payload.get(key), list):
            return payload[key]
    return as_list(lookup(payload, "url", "download_url"))


def normalize(data: Any, variant: str = "primary") -> NormalizedMedia:
    payload = as_dict(data)
    media: List[Optional[MediaItem]] = []
    downloads: List[Optional[DownloadVariant]] = []
    for entry in _entries(data):
        url = url_of(entry)
        if url is None:
            continue
        kind = "video" if looks_like_video(url) else "image"
        thumbnail = lookup(as_dict(entry), "thumbnail", "thumb")
        media.append(make_item(url, type=kind, thumbnail=thumbnail))
        downloads.append(make_variant(url, type=kind))

    items = compact(media)
    return NormalizedMedia(
        title=as_str(lookup(payload, "title", "caption")),
        author=as_str(lookup(payload, "username", "author")),
        thumbnail=http_or_none(items[0].thumbnail if items else None) or http_or_none(payload.get("thumb")),
        downloads=compact(downloads),
        media=items,
    )
