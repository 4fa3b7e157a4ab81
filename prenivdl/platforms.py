"""Supported platforms, URL detection and upstream endpoint keys."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Final, Optional

from .normalizers import has_normalizer, tiktok
from .upstream import FetchStrategy


@dataclass(frozen=True, slots=True)
class PlatformSpec:
    """Describes one platform and the upstream endpoints tried for it, in order."""

    id: str
    name: str
    types: tuple[str, ...]
    pattern: re.Pattern[str]
    strategies: tuple[FetchStrategy, ...]

    @property
    def has_normalizer(self) -> bool:
        return has_normalizer(self.id)

    def as_payload(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "types": list(self.types)}


def _spec(id: str, name: str, types: tuple[str, ...], pattern: str, *strategies: FetchStrategy) -> PlatformSpec:
    return PlatformSpec(
        id=id,
        name=name,
        types=types,
        pattern=re.compile(pattern, re.IGNORECASE),
        strategies=strategies or (FetchStrategy(id, "primary"),),
    )


# Detection order matters: the first matching pattern wins.
PLATFORMS: Final[tuple[PlatformSpec, ...]] = (
    _spec("tiktok", "TikTok", ("video", "audio", "image"), r"tiktok\.com|vm\.tiktok",
          FetchStrategy("tiktok", "primary", accepts=tiktok.has_downloads), FetchStrategy("tiktok_v1", "v1")),
    _spec("instagram", "Instagram", ("video", "image"), r"instagram\.com|instagr\.am"),
    _spec("facebook", "Facebook", ("video",), r"facebook\.com|fb\.watch|fb\.com"),
    _spec("twitter", "Twitter/X", ("video",), r"twitter\.com|x\.com"),
    _spec("youtube", "YouTube", ("video", "audio"), r"youtube\.com|youtu\.be"),
    _spec("douyin", "Douyin", ("video",), r"douyin\.com"),
    _spec("spotify", "Spotify", ("audio",), r"spotify\.com"),
    _spec("pinterest", "Pinterest", ("image", "video"), r"pinterest\.com|pin\.it"),
    _spec("applemusic", "Apple Music", ("audio",), r"music\.apple\.com"),
    _spec("capcut", "CapCut", ("video",), r"capcut\.com"),
    _spec("bluesky", "Bluesky", ("video", "image"), r"bsky\.app"),
    _spec("rednote", "RedNote/Xiaohongshu", ("video", "image"), r"xiaohongshu\.com|xhslink\.com"),
    _spec("threads", "Threads", ("video",), r"threads\.net"),
    _spec("kuaishou", "Kuaishou", ("video", "image"), r"kuaishou\.com|ksurl\.cn"),
    _spec("weibo", "Weibo", ("video", "image"), r"weibo\.com"),
)
PLATFORMS_BY_ID: Final[dict[str, PlatformSpec]] = {spec.id: spec for spec in PLATFORMS}
# Listing order used by /api/platforms and the CLI help.
LISTING_ORDER: Final[tuple[str, ...]] = (
    "tiktok", "instagram", "facebook", "twitter", "youtube", "spotify", "pinterest", "douyin",
    "capcut", "threads", "bluesky", "rednote", "kuaishou", "weibo", "applemusic",
)


def detect_platform(url: str) -> Optional[PlatformSpec]:
    """Match ``url`` against each platform pattern in table order."""
    if not url:
        return None
    for spec in PLATFORMS:
        if spec.pattern.search(url):
            return spec
    return None


def get_platform(platform_id: str) -> Optional[PlatformSpec]:
    return PLATFORMS_BY_ID.get(platform_id)


def platform_listing() -> list[dict[str, Any]]:
    return [PLATFORMS_BY_ID[platform_id].as_payload() for platform_id in LISTING_ORDER]
