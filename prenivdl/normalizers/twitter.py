"""Twitter/X videos: bare lists or ``{"media": [...]}`` with numeric ``quality``."""

from __future__ import annotations

from typing import Any

from ..core.models import NormalizedMedia
from ..core.utils import as_dict, as_str, url_of
from .base import compact, http_or_none, make_variant

VARIANTS: tuple[str, ...] = ("primary",)


def normalize(data: Any, variant: str = "primary") -> NormalizedMedia:
    payload = as_dict(data)
    entries = data if isinstance(data, list) else payload.get("media")
    if not isinstance(entries, list):
        entries = []

    downloads = []
    for entry in entries:
        quality = as_str(as_dict(entry).get("quality"))
        downloads.append(make_variant(url_of(entry), type="video", quality=quality or "", resolution=quality))

    return NormalizedMedia(
        title=as_str(payload.get("title")),
        thumbnail=http_or_none(payload.get("thumbnail")),
        downloads=compact(downloads),
    )
