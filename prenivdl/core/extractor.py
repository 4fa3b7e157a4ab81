"""Heuristic URL harvesting for platforms without a dedicated normalizer."""

from __future__ import annotations

from typing import Any, List

URL_FIELDS: tuple[str, ...] = ("url", "download_url", "downloadUrl", "video", "audio", "mp4", "mp3", "hd", "sd")
EXCLUDED_MARKERS: tuple[str, ...] = ("thumbnail", "cover")


def _wanted(value: str) -> bool:
    if not value.startswith(("http://", "https://")):
        return False
    return not any(marker in value for marker in EXCLUDED_MARKERS)


def extract_urls(node: Any) -> List[str]:
    """Collect HTTP(S) URL strings from an arbitrary JSON tree.

    Mappings are descended through ``URL_FIELDS`` (in that order), so free
    text such as captions never contributes links. The root mapping is the
    upstream ``data`` envelope: after its ``URL_FIELDS`` it also opens any other
    nested mapping or list, but never its bare strings. Lists are walked element by
    element. Each mapping is expanded at most once, which keeps self-referencing
    structures finite. Results are unique and in discovery order.
    """
    found: List[str] = []
    seen_urls: set[str] = set()
    visited: set[int] = set()
    # Reversed pushes keep the walk depth-first in document order.
    stack: List[Any] = [node]
    root = node if isinstance(node, dict) else None

    while stack:
        current = stack.pop()
        if not current:
            continue
        if isinstance(current, str):
            if current not in seen_urls and _wanted(current):
                seen_urls.add(current)
                found.append(current)
        elif isinstance(current, (list, tuple)):
            stack.extend(reversed(current))
        elif isinstance(current, dict):
            if id(current) in visited:
                continue
            visited.add(id(current))
            children = [current[field] for field in URL_FIELDS if current.get(field)]
            if current is root:
                children += [
                    value
                    for key, value in current.items()
                    if key not in URL_FIELDS and isinstance(value, (dict, list))
                ]
            stack.extend(reversed(children))

    return found
