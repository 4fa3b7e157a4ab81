"""TikTok payloads.

The upstream has served two shapes for ``data.downloads``:

* bucketed (current): ``{"video": [...], "audio": [...], "image": [...]}``
  whose entries are URL strings or ``{"url": ...}`` mappings;
* flat (legacy ``v1``): ``[{"url": ..., "text": "Download MP4 HD"}, ...]``
  where the media kind is only recoverable from the label.

Both normalize to the bucketed view (``NormalizedMedia.buckets()``).
"""

from __future__ import annotations

from typing import Any, List, Optional

from ..core.models import DownloadVariant, NormalizedMedia
from ..core.utils import as_dict, as_int, as_list, as_str, lookup, pick, url_of
from .base import compact, http_or_none, make_variant

VARIANTS: tuple[str, ...] = ("primary", "v1")
_AUDIO_MARKERS = ("mp3", "audio", "music")
_IMAGE_MARKERS = ("photo", "image", "slide")


def detect_shape(data: Any) -> Optional[str]:
    """``"bucketed"``, ``"flat"`` or ``None`` from the structure of ``data.downloads``."""
    downloads = as_dict(data).get("downloads")
    if isinstance(downloads, dict) and ("video" in downloads or "audio" in downloads):
        return "bucketed"
    if isinstance(downloads, list):
        return "flat"
    return None


def _classify_label(label: str) -> str:
    lowered = label.lower()
    if any(marker in lowered for marker in _AUDIO_MARKERS):
        return "audio"
    if any(marker in lowered for marker in _IMAGE_MARKERS):
        return "image"
    return "video"


def _from_buckets(downloads: dict) -> List[DownloadVariant]:
    variants: List[Optional[DownloadVariant]] = []
    for kind in ("video", "audio", "image"):
        for entry in as_list(downloads.get(kind)):
            label = as_str(as_dict(entry).get("text")) or as_str(as_dict(entry).get("quality")) or ""
            variants.append(make_variant(url_of(entry), type=kind, quality=label))
    return compact(variants)


def _from_flat(downloads: list) -> List[DownloadVariant]:
    variants: List[Optional[DownloadVariant]] = []
    for entry in downloads:
        label = as_str(as_dict(entry).get("text")) or ""
        variants.append(make_variant(url_of(entry), type=_classify_label(label), quality=label))
    # Stable sort keeps upstream order inside each kind.
    order = {"video": 0, "audio": 1, "image": 2}
    return sorted(compact(variants), key=lambda v: order[v.type])


def has_downloads(data: Any) -> bool:
    """True when ``data.downloads`` has a known shape and at least one usable URL."""
    downloads = as_dict(data).get("downloads")
    shape = detect_shape(data)
    if shape == "bucketed":
        return bool(_from_buckets(downloads))
    if shape == "flat":
        return bool(_from_flat(downloads))
    return False


def normalize(data: Any, variant: str = "primary") -> NormalizedMedia:
    payload = as_dict(data)
    shape = detect_shape(payload)
    if shape == "bucketed":
        downloads = _from_buckets(payload["downloads"])
    elif shape == "flat":
        downloads = _from_flat(payload["downloads"])
    else:
        downloads = []

    music = as_dict(payload.get("music"))
    audio_title = pick(as_str(payload.get("audio_title")), as_str(music.get("title")))
    metadata = {"shape": shape, "variant_hint": variant}
    if audio_title:
        metadata["audio_title"] = audio_title
    description = as_str(payload.get("description"))
    if description:
        metadata["description"] = description

    seconds = as_int(payload.get("duration"))
    author = lookup(payload, "author", "creator", "nickname")
    if isinstance(author, dict):
        author = lookup(author, "nickname", "unique_id", "name")
    return NormalizedMedia(
        title=as_str(payload.get("title")),
        author=as_str(author),
        thumbnail=http_or_none(lookup(payload, "thumbnail", "cover")),
        duration=seconds * 1000 if seconds is not None else None,
        downloads=downloads,
        metadata=metadata,
    )
