"""Per-platform mapping of raw upstream payloads into ``NormalizedMedia``."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Final

from ..core.models import NormalizedMedia
from . import facebook, instagram, kuaishou, pinterest, spotify, tiktok, twitter, youtube

logger = logging.getLogger(__name__)


class UnknownPlatformError(LookupError):
    """No dedicated normalizer exists for the requested platform."""


class UnknownVariantError(ValueError):
    """The variant hint is not one the platform's normalizer understands."""


@dataclass(frozen=True, slots=True)
class Normalizer:
    platform: str
    variants: tuple[str, ...]
    func: Callable[[Any, str], NormalizedMedia]


NORMALIZERS: Final[dict[str, Normalizer]] = {
    module.__name__.rsplit(".", 1)[-1]: Normalizer(module.__name__.rsplit(".", 1)[-1], module.VARIANTS, module.normalize)
    for module in (tiktok, instagram, facebook, youtube, spotify, pinterest, kuaishou, twitter)
}


def has_normalizer(platform: str) -> bool:
    return platform in NORMALIZERS


def normalize(platform: str, raw_payload: Any, variant: str = "primary") -> NormalizedMedia:
    """Map ``raw_payload`` (the upstream ``data`` member) into the common shape.

    ``variant`` must be one the platform declares; the payload's structure
    still decides how it is parsed. Payloads with no usable media produce an
    empty result rather than an exception.
    """
    try:
        normalizer = NORMALIZERS[platform]
    except KeyError:
        raise UnknownPlatformError(platform) from None
    if variant not in normalizer.variants:
        raise UnknownVariantError(f"{platform} has no '{variant}' variant (expected one of {normalizer.variants})")

    result = normalizer.func(raw_payload, variant)
    logger.debug(
        "Normalized %s payload",
        platform,
        extra={"event": "normalize.done", "platform": platform, "links": len(result.downloads)},
    )
    return result


__all__ = [
    "NORMALIZERS",
    "Normalizer",
    "UnknownPlatformError",
    "UnknownVariantError",
    "has_normalizer",
    "normalize",
]
