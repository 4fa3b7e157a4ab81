"""Assembly of the platform-agnostic download list.

Each builder receives the normalizer output and the raw upstream ``data``
member (some platforms keep useful fields only in the raw payload) and returns
a ``UnifiedResult`` whose ``links`` order is fully determined by the payload.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from .extractor import extract_urls
from .models import NormalizedMedia, UnifiedLink, UnifiedResult
from .utils import as_dict, as_list, as_str, is_http_url, looks_like_video, pick

logger = logging.getLogger(__name__)

YOUTUBE_RESOLUTIONS: tuple[str, ...] = ("360p", "480p", "720p", "1080p")
_AUDIO_EXTENSIONS = (".mp3", ".m4a")
_IMAGE_EXTENSIONS = (".jpg", ".png", ".webp")

Builder = Callable[[NormalizedMedia, Dict[str, Any]], UnifiedResult]


def _result(platform: str, media: NormalizedMedia, raw: Dict[str, Any], links: List[UnifiedLink], **overrides) -> UnifiedResult:
    fields = {
        "title": pick(media.title, as_str(raw.get("title"))),
        "thumbnail": pick(media.thumbnail, as_str(raw.get("thumbnail"))),
        "author": pick(media.author, as_str(raw.get("author"))),
        "duration": media.duration,
    }
    fields.update(overrides)
    return UnifiedResult(platform=platform, links=links, **fields)


def _tiktok(media: NormalizedMedia, raw: Dict[str, Any]) -> UnifiedResult:
    buckets = media.buckets()
    links: List[UnifiedLink] = []
    for index, item in enumerate(buckets["video"]):
        label = "HD (No Watermark)" if index == 0 else f"Video Option {index + 1}"
        links.append(UnifiedLink(url=item.url, quality=label, type="video", format="mp4"))
    audio_label = media.metadata.get("audio_title") or "Audio/Music"
    for item in buckets["audio"]:
        links.append(UnifiedLink(url=item.url, quality=audio_label, type="audio", format="mp3"))
    for index, item in enumerate(buckets["image"]):
        links.append(UnifiedLink(url=item.url, quality=f"Image {index + 1}", type="image", format="jpg"))
    return _result("tiktok", media, raw, links)


def _instagram_link(url: str, index: int) -> UnifiedLink:
    if looks_like_video(url):
        return UnifiedLink(url=url, quality=f"Video {index + 1}", type="video", format="mp4")
    return UnifiedLink(url=url, quality=f"Photo {index + 1}", type="image", format="jpg")


def _instagram(media: NormalizedMedia, raw: Dict[str, Any]) -> UnifiedResult:
    links = [_instagram_link(item.url, index) for index, item in enumerate(media.media)]
    if not links:
        fallback = as_list(raw.get("download_url"))
        links = [_instagram_link(url, index) for index, url in enumerate(fallback) if is_http_url(url)]
    thumbnail = pick(media.media[0].thumbnail if media.media else None, as_str(raw.get("thumb")))
    return _result("instagram", media, raw, links, title="Instagram Media", thumbnail=thumbnail)


def _facebook(media: NormalizedMedia, raw: Dict[str, Any]) -> UnifiedResult:
    links = [
        UnifiedLink(
            url=item.url,
            quality=pick(item.quality, item.resolution, default="Video"),
            type="video",
            format="mp4",
            resolution=item.resolution,
        )
        for item in media.downloads
    ]
    return _result("facebook", media, raw, links, title=pick(media.title, as_str(raw.get("title")), default="Facebook Video"))


def _youtube(media: NormalizedMedia, raw: Dict[str, Any]) -> UnifiedResult:
    buckets = media.buckets()
    links: List[UnifiedLink] = []
    seen: set[str] = set()
    for item in buckets["video"]:
        quality = item.quality or "Video"
        if quality not in YOUTUBE_RESOLUTIONS or quality in seen:
            continue
        seen.add(quality)
        links.append(UnifiedLink(url=item.url, quality=quality, type="video", format=item.format or "mp4", resolution=quality))
    if buckets["audio"]:
        best_audio = buckets["audio"][0]
        links.append(UnifiedLink(url=best_audio.url, quality="Audio MP3", type="audio", format=best_audio.format or "mp3"))
    return _result("youtube", media, raw, links)


def _spotify(media: NormalizedMedia, raw: Dict[str, Any]) -> UnifiedResult:
    links = [
        UnifiedLink(url=item.url, quality=item.quality or "MP3", type="audio", format=item.format or "mp3")
        for item in media.downloads
    ]
    if is_http_url(media.thumbnail):
        links.append(UnifiedLink(url=media.thumbnail, quality="Cover Image", type="image", format="jpg"))
    return _result("spotify", media, raw, links, author=media.author)


def _pinterest(media: NormalizedMedia, raw: Dict[str, Any]) -> UnifiedResult:
    links = []
    for index, item in enumerate(media.downloads):
        if item.quality:
            label = item.quality[:1].upper() + item.quality[1:]
        else:
            label = f"{'Video' if item.type == 'video' else 'Image'} {index + 1}"
        if item.size:
            label = f"{label} - {item.size}"
        links.append(UnifiedLink(url=item.url, quality=label, type=item.type, format=item.format))
    return _result("pinterest", media, raw, links)


def _kuaishou(media: NormalizedMedia, raw: Dict[str, Any]) -> UnifiedResult:
    buckets = media.buckets()
    links = [
        UnifiedLink(url=item.url, quality="Video (Original Quality)", type="video", format="mp4")
        for item in buckets["video"]
    ]
    links += [
        UnifiedLink(url=item.url, quality=f"Image {index + 1}", type="image", format="jpg")
        for index, item in enumerate(buckets["image"])
    ]
    return _result("kuaishou", media, raw, links)


def _twitter(media: NormalizedMedia, raw: Dict[str, Any]) -> UnifiedResult:
    links = []
    for index, item in enumerate(media.downloads):
        height = item.quality.lower().removesuffix("p")
        label = f"{height}p" if height.isdigit() else f"Video {index + 1}"
        links.append(UnifiedLink(url=item.url, quality=label, type="video", format="mp4", resolution=item.resolution))
    return _result("twitter", media, raw, links, title=pick(media.title, default="Twitter Video"))


BUILDERS: Dict[str, Builder] = {
    "tiktok": _tiktok,
    "instagram": _instagram,
    "facebook": _facebook,
    "youtube": _youtube,
    "spotify": _spotify,
    "pinterest": _pinterest,
    "kuaishou": _kuaishou,
    "twitter": _twitter,
}


def classify_url(url: str) -> tuple[str, str]:
    """(type, format) guessed from extension substrings in ``url``."""
    if any(ext in url for ext in _AUDIO_EXTENSIONS):
        return "audio", "mp3"
    if any(ext in url for ext in _IMAGE_EXTENSIONS):
        return "image", "jpg"
    return "video", "mp4"


def build_generic(platform: str, raw: Any) -> UnifiedResult:
    """Link list for platforms without a normalizer, via :func:`extract_urls`."""
    links = []
    for index, url in enumerate(extract_urls(raw)):
        kind, fmt = classify_url(url)
        links.append(UnifiedLink(url=url, quality=f"Download {index + 1}", type=kind, format=fmt))
    fields = as_dict(raw)
    return UnifiedResult(
        platform=platform,
        title=pick(as_str(fields.get("title")), default=f"{platform} Media"),
        thumbnail=as_str(fields.get("thumbnail")),
        author=as_str(fields.get("author")),
        links=links,
    )


def build_links(platform: str, normalized: Optional[NormalizedMedia], raw: Any) -> UnifiedResult:
    """Unified result for ``platform``.

    The dedicated builder is used whenever one exists; the generic extractor
    only covers platforms that have none.
    """
    builder = BUILDERS.get(platform)
    if builder is None:
        result = build_generic(platform, raw)
    else:
        result = builder(normalized or NormalizedMedia(), as_dict(raw))
    logger.debug(
        "Built %d links for %s",
        len(result.links),
        platform,
        extra={"event": "links.built", "platform": platform, "links": len(result.links)},
    )
    return result
