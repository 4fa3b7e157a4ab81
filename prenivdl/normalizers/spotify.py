"""Spotify tracks: a single MP3 plus cover art."""

from __future__ import annotations

from typing import Any

from ..core.models import NormalizedMedia
from ..core.utils import as_dict, as_int, as_str, lookup, pick
from .base import compact, http_or_none, make_variant

VARIANTS: tuple[str, ...] = ("primary",)
NO_TITLE = "No title"
UNKNOWN_ARTIST = "Unknown artist"


def normalize(data: Any, variant: str = "primary") -> NormalizedMedia:
    payload = as_dict(data)
    download = make_variant(lookup(payload, "download", "download_url", "url"), type="audio", quality="MP3", format="mp3")
    metadata = {}
    if as_str(payload.get("type")):
        metadata["type"] = as_str(payload.get("type"))
    return NormalizedMedia(
        title=pick(as_str(payload.get("title")), default=NO_TITLE),
        author=pick(as_str(payload.get("artist")), default=UNKNOWN_ARTIST),
        thumbnail=http_or_none(lookup(payload, "image", "thumbnail", "cover")),
        # Upstream reports milliseconds already.
        duration=as_int(payload.get("duration")),
        downloads=compact([download]),
        metadata=metadata,
    )
