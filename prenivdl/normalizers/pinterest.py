"""Pinterest pins.

Current payloads carry ``media_urls`` (one entry per quality); the legacy
``v1`` shape only exposes top-level ``video``/``gif``/``image`` URLs.
"""

from __future__ import annotations

from typing import Any, List, Optional

from ..core.models import DownloadVariant, NormalizedMedia
from ..core.utils import as_dict, as_list, as_str, lookup, url_of
from .base import compact, http_or_none, make_item, make_variant

VARIANTS: tuple[str, ...] = ("primary", "v1")
QUALITY_PREFERENCE: tuple[str, ...] = ("original", "large")
_KINDS = ("video", "gif", "image")


def detect_shape(data: Any) -> Optional[str]:
    payload = as_dict(data)
    if isinstance(payload.get("media_urls"), list):
        return "media_urls"
    if any(isinstance(payload.get(key), str) for key in _KINDS):
        return "legacy"
    return None


def classify(entry: Any) -> str:
    """``video``, ``gif`` or ``image``: declared type first, then the URL, then image."""
    declared = as_str(as_dict(entry).get("type"))
    if declared and declared.lower() in _KINDS:
        return declared.lower()
    url = url_of(entry) or ""
    if ".gif" in url.lower():
        return "gif"
    return "image"


def preferred_index(entries: List[Any]) -> int:
    """Index of the default download: ``original``, else ``large``, else the first."""
    qualities = [(as_str(as_dict(entry).get("quality")) or "").lower() for entry in entries]
    for wanted in QUALITY_PREFERENCE:
        if wanted in qualities:
            return qualities.index(wanted)
    return 0


def _variant(entry: Any, kind: str) -> Optional[DownloadVariant]:
    fields = as_dict(entry)
    return make_variant(
        url_of(entry),
        type="video" if kind == "video" else "image",
        quality=as_str(fields.get("quality")) or "",
        format="gif" if kind == "gif" else None,
        size=as_str(fields.get("size")),
    )


def normalize(data: Any, variant: str = "primary") -> NormalizedMedia:
    payload = as_dict(data)
    shape = detect_shape(payload)

    if shape == "media_urls":
        entries = [entry for entry in payload["media_urls"] if url_of(entry)]
    elif shape == "legacy":
        entries = [{"type": kind, "url": payload[kind]} for kind in _KINDS if url_of(payload.get(kind))]
    else:
        entries = []

    if entries:
        first = preferred_index(entries)
        entries = [entries[first], *entries[:first], *entries[first + 1:]]

    kinds = [classify(entry) for entry in entries]
    downloads = compact(_variant(entry, kind) for entry, kind in zip(entries, kinds))
    media = compact(
        make_item(url_of(entry), type="video" if kind == "video" else "image")
        for entry, kind in zip(entries, kinds)
    )

    metadata = {"shape": shape, "kinds": kinds}
    for key in ("id", "description", "created_at"):
        value = as_str(payload.get(key))
        if value:
            metadata[key] = value

    return NormalizedMedia(
        title=as_str(payload.get("title")),
        author=as_str(lookup(as_dict(payload.get("author")), "name", "username") or payload.get("author")),
        thumbnail=http_or_none(lookup(payload, "thumbnail", "thumb")),
        downloads=downloads,
        media=media,
        metadata=metadata,
    )
