"""Fetch -> normalize -> build pipeline shared by the CLI and the HTTP server."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .config import AppConfig
from .core.links import build_links
from .core.models import NormalizedMedia, UnifiedResult
from .normalizers import has_normalizer, normalize
from .platforms import PlatformSpec, detect_platform, get_platform
from .upstream import FetchResult, FetchStrategy, UpstreamClient

logger = logging.getLogger(__name__)

MEDIA_UNAVAILABLE_MESSAGE = "No downloadable media found. The post may be private, unavailable or deleted."


class ResolveError(RuntimeError):
    """Base class for request-level problems that are not transport failures."""


class UnsupportedPlatformError(ResolveError):
    def __init__(self, url: str) -> None:
        super().__init__("Unsupported platform. Use /api/platforms to see supported platforms.")
        self.url = url


class PlatformNotConfiguredError(ResolveError):
    def __init__(self, platform: str) -> None:
        super().__init__(f"API not configured for {platform}")
        self.platform = platform


class MediaUnavailableError(ResolveError):
    """The API succeeded but returned nothing downloadable."""

    def __init__(self, platform: str, message: str = MEDIA_UNAVAILABLE_MESSAGE) -> None:
        super().__init__(message)
        self.platform = platform


@dataclass(frozen=True, slots=True)
class Resolution:
    """Everything learned about one source URL."""

    platform: PlatformSpec
    fetch: FetchResult
    normalized: Optional[NormalizedMedia]
    result: UnifiedResult

    @property
    def is_empty(self) -> bool:
        return not self.result.links


class MediaResolver:
    """Resolve a social-media URL into a ``UnifiedResult``."""

    def __init__(self, config: AppConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config
        self.client = UpstreamClient(config, transport=transport)

    def platform_for(self, url: str, platform_id: str | None = None) -> PlatformSpec:
        spec = get_platform(platform_id) if platform_id else detect_platform(url)
        if spec is None:
            raise UnsupportedPlatformError(url)
        return spec

    def strategies_for(self, spec: PlatformSpec) -> list[FetchStrategy]:
        strategies = [strategy for strategy in spec.strategies if self.config.endpoint_url(strategy.endpoint_key)]
        if not strategies:
            raise PlatformNotConfiguredError(spec.id)
        return strategies

    async def resolve(self, url: str, *, platform_id: str | None = None, require_media: bool = False) -> Resolution:
        """Look ``url`` up upstream and build its unified link list.

        Upstream failures propagate as ``UpstreamError`` subclasses. An empty
        link list is a valid result unless ``require_media`` is set, in which
        case ``MediaUnavailableError`` is raised.
        """
        url = url.strip()
        spec = self.platform_for(url, platform_id)
        fetched = await self.client.fetch(self.strategies_for(spec), url)

        normalized = normalize(spec.id, fetched.data, fetched.variant) if has_normalizer(spec.id) else None
        result = build_links(spec.id, normalized, fetched.data)
        resolution = Resolution(platform=spec, fetch=fetched, normalized=normalized, result=result)

        logger.info(
            "Resolved %s: %d links",
            spec.id,
            len(result.links),
            extra={"event": "resolve.done", "platform": spec.id, "links": len(result.links), "strategy": fetched.endpoint_key},
        )
        if require_media and resolution.is_empty:
            raise MediaUnavailableError(spec.id)
        return resolution
