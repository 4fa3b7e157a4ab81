"""YouTube format lists.

Muxed ``video_with_audio`` renditions are listed ahead of video-only ones so
that anything picking "first per resolution" prefers a file with sound.
"""

from __future__ import annotations

from typing import Any

from ..core.models import NormalizedMedia
from ..core.utils import as_dict, as_int, as_list, as_str, lookup, url_of
from .base import compact, http_or_none, make_variant

VARIANTS: tuple[str, ...] = ("primary",)
_KIND_ORDER = {"video_with_audio": 0, "video": 1, "audio": 2}


def normalize(data: Any, variant: str = "primary") -> NormalizedMedia:
    payload = as_dict(data)
    formats = [as_dict(entry) for entry in as_list(payload.get("formats"))]
    formats = [entry for entry in formats if entry.get("type") in _KIND_ORDER]
    formats.sort(key=lambda entry: _KIND_ORDER[entry["type"]])

    downloads = []
    for entry in formats:
        kind = "audio" if entry["type"] == "audio" else "video"
        quality = as_str(entry.get("quality")) or ""
        downloads.append(
            make_variant(
                url_of(entry),
                type=kind,
                quality=quality,
                resolution=quality if kind == "video" and quality else None,
                format=as_str(lookup(entry, "extension", "ext")),
            )
        )

    seconds = as_int(payload.get("duration"))
    return NormalizedMedia(
        title=as_str(payload.get("title")),
        author=as_str(lookup(payload, "author", "channel", "uploader")),
        thumbnail=http_or_none(payload.get("thumbnail")),
        duration=seconds * 1000 if seconds is not None else None,
        downloads=compact(downloads),
        metadata={"muxed": sum(1 for entry in formats if entry["type"] == "video_with_audio")},
    )
