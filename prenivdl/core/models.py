from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .utils import is_http_url

MediaType = Literal["video", "audio", "image"]
MEDIA_TYPES: tuple[str, ...] = ("video", "audio", "image")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class DownloadVariant(_Frozen):
    """One downloadable rendition produced by a normalizer."""

    url: str
    quality: str = ""
    resolution: Optional[str] = None
    type: MediaType = "video"
    format: str = Field(default="mp4", description="Lowercase file extension")
    size: Optional[str] = None

    @field_validator("url")
    @classmethod
    def _absolute_http(cls, v: str) -> str:
        if not is_http_url(v):
            raise ValueError("url must be an absolute http(s) URL")
        return v

    @field_validator("format")
    @classmethod
    def _lower_format(cls, v: str) -> str:
        return v.strip().lstrip(".").lower() or "bin"


class MediaItem(_Frozen):
    url: str
    thumbnail: Optional[str] = None
    type: MediaType = "image"

    @field_validator("url")
    @classmethod
    def _absolute_http(cls, v: str) -> str:
        if not is_http_url(v):
            raise ValueError("url must be an absolute http(s) URL")
        return v


class NormalizedMedia(_Frozen):
    title: Optional[str] = None
    author: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0, description="Duration in milliseconds")
    downloads: List[DownloadVariant] = Field(default_factory=list)
    media: List[MediaItem] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.downloads and not self.media

    def buckets(self) -> Dict[str, List[DownloadVariant]]:
        """Group downloads by media type, preserving their original order."""
        grouped: Dict[str, List[DownloadVariant]] = {kind: [] for kind in MEDIA_TYPES}
        for variant in self.downloads:
            grouped[variant.type].append(variant)
        return grouped

    @property
    def default_download(self) -> Optional[DownloadVariant]:
        return self.downloads[0] if self.downloads else None


class UnifiedLink(_Frozen):
    url: str
    quality: str
    type: MediaType
    format: str
    resolution: Optional[str] = None


class UnifiedResult(_Frozen):
    platform: str
    title: Optional[str] = None
    thumbnail: Optional[str] = None
    author: Optional[str] = None
    duration: Optional[int] = None
    links: List[UnifiedLink] = Field(default_factory=list)

    def as_payload(self) -> Dict[str, Any]:
        """JSON-ready dict; ``resolution`` is only emitted where it was set."""
        data = self.model_dump(mode="json")
        data["links"] = [link.model_dump(mode="json", exclude_none=True) for link in self.links]
        return data
