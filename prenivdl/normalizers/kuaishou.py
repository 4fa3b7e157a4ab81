"""Kuaishou posts: an optional original-quality video plus an image atlas."""

from __future__ import annotations

from typing import Any

from ..core.models import NormalizedMedia
from ..core.utils import as_dict, as_list, as_str, lookup, url_of
from .base import compact, http_or_none, make_item, make_variant

VARIANTS: tuple[str, ...] = ("primary",)


def normalize(data: Any, variant: str = "primary") -> NormalizedMedia:
    payload = as_dict(data)
    original = as_dict(payload.get("original"))

    video_url = url_of(original.get("videoUrl")) if payload.get("hasVideo") else None
    atlas = [url_of(image) for image in as_list(original.get("atlas"))] if payload.get("hasAtlas") else []
    atlas = [url for url in atlas if url]

    downloads = [make_variant(video_url, type="video", quality="original", format="mp4")] if video_url else []
    downloads += [make_variant(url, type="image", format="jpg") for url in atlas]
    media = [make_item(video_url, type="video")] if video_url else []
    media += [make_item(url, type="image") for url in atlas]

    return NormalizedMedia(
        title=as_str(payload.get("title")),
        author=as_str(lookup(payload, "author", "userName")),
        thumbnail=http_or_none(lookup(original, "cover", "coverUrl") or payload.get("thumbnail")),
        downloads=compact(downloads),
        media=compact(media),
        metadata={"has_video": bool(video_url), "images": len(atlas)},
    )
