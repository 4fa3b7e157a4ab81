"""Facebook videos: a list of renditions keyed by ``resolution``."""

from __future__ import annotations

from typing import Any

from ..core.models import NormalizedMedia
from ..core.utils import as_dict, as_str, lookup, url_of
from .base import compact, http_or_none, make_variant

VARIANTS: tuple[str, ...] = ("primary",)


def normalize(data: Any, variant: str = "primary") -> NormalizedMedia:
    payload = as_dict(data)
    if isinstance(data, list):
        entries = data
    else:
        entries = next((payload[key] for key in ("media", "links", "downloads") if isinstance(payload.get(key), list)), [])

    downloads = []
    for entry in entries:
        fields = as_dict(entry)
        resolution = as_str(fields.get("resolution"))
        downloads.append(
            make_variant(
                url_of(entry),
                type="video",
                quality=as_str(fields.get("quality")) or resolution or "",
                resolution=resolution,
            )
        )

    return NormalizedMedia(
        title=as_str(payload.get("title")),
        thumbnail=http_or_none(lookup(payload, "thumbnail", "thumb")),
        downloads=compact(downloads),
    )
