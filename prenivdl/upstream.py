"""HTTP client for the third-party resolver API."""

from __future__ import annotations

import logging
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence
from urllib.parse import quote

import httpx

from .config import AppConfig

logger = logging.getLogger(__name__)

# Same reserved set as JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"


class UpstreamError(RuntimeError):
    """Base class for failures talking to the resolver API."""


class UpstreamTimeoutError(UpstreamError):
    """The request did not complete within the configured timeout."""


class UpstreamNetworkError(UpstreamError):
    """DNS, connection or protocol failure before a response arrived."""


class UpstreamHTTPError(UpstreamError):
    def __init__(self, status_code: int, message: str | None = None) -> None:
        super().__init__(message or f"API Error: {status_code}")
        self.status_code = status_code


class InvalidResponseError(UpstreamError):
    """The body was not a JSON object."""


class UpstreamStatusError(UpstreamError):
    """The API answered but flagged the request as failed."""

    def __init__(self, message: str | None = None, payload: Any = None) -> None:
        super().__init__(message or "The API returned an error or invalid response")
        self.upstream_message = message
        self.payload = payload


def encode_target(url: str) -> str:
    return quote(url, safe=_URI_COMPONENT_SAFE)


def is_success(payload: Any) -> bool:
    """Truthy ``status`` (or ``success``) flag on an upstream envelope."""
    if not isinstance(payload, dict):
        return False
    return bool(payload.get("status") or payload.get("success"))


def upstream_message(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    for key in ("msg", "message", "error"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def has_download_list(data: Any) -> bool:
    return isinstance(data, dict) and bool(data.get("downloads"))


@dataclass(frozen=True, slots=True)
class FetchStrategy:
    """One upstream endpoint to try, with the variant tag its responses carry."""

    endpoint_key: str
    variant: str
    # Applied to ``payload["data"]`` when a later strategy could still be tried.
    accepts: Optional[Callable[[Any], bool]] = None

    def is_usable(self, payload: Any, *, last: bool) -> bool:
        if not is_success(payload):
            return False
        if last:
            return True
        check = self.accepts or has_download_list
        return check(payload.get("data"))


@dataclass(frozen=True, slots=True)
class FetchResult:
    payload: dict[str, Any]
    variant: str
    endpoint_key: str

    @property
    def data(self) -> Any:
        return self.payload.get("data")


class UpstreamClient:
    """Thin async wrapper around ``httpx.AsyncClient`` for resolver lookups.

    ``transport`` is forwarded to httpx, which lets tests swap in an
    ``httpx.MockTransport``.
    """

    def __init__(self, config: AppConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config
        self._transport = transport
        self._timeout = httpx.Timeout(config.metadata_timeout_seconds)
        self._headers = {"User-Agent": config.mobile_user_agent, "Accept": "application/json"}

    def endpoint_url(self, endpoint_key: str, target_url: str) -> Optional[str]:
        base = self.config.endpoint_url(endpoint_key)
        if base is None:
            return None
        return f"{base}?url={encode_target(target_url)}"

    async def fetch_json(self, endpoint_key: str, target_url: str) -> dict[str, Any]:
        """GET one endpoint and return its decoded JSON object."""
        request_url = self.endpoint_url(endpoint_key, target_url)
        if request_url is None:
            raise UpstreamError(f"API not configured for {endpoint_key}")

        logger.info(
            "Fetching %s", endpoint_key, extra={"event": "upstream.fetch", "strategy": endpoint_key, "url": target_url[:80]}
        )
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._headers,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(request_url)
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError("Request timeout - please try again") from exc
        except httpx.HTTPError as exc:
            raise UpstreamNetworkError("Network error - please check your connection") from exc

        if response.is_error:
            message = None
            with suppress(ValueError):
                message = upstream_message(response.json())
            raise UpstreamHTTPError(response.status_code, message)

        try:
            payload = response.json()
        except ValueError as exc:
            raise InvalidResponseError("The API returned a non-JSON response") from exc
        if not isinstance(payload, dict):
            raise InvalidResponseError("The API returned an unexpected response shape")
        return payload

    async def fetch(self, strategies: Sequence[FetchStrategy], target_url: str) -> FetchResult:
        """Try ``strategies`` in order and return the first usable response.

        Every strategy but the last must pass its ``accepts`` check (a
        non-empty ``downloads`` by default) to be accepted; the last one only needs a truthy ``status``, so an empty but
        successful answer surfaces as "no media" rather than as an error. When
        every strategy fails, the last failure is raised.
        """
        if not strategies:
            raise UpstreamError("No upstream strategy configured")

        last_error: UpstreamError | None = None
        for position, strategy in enumerate(strategies):
            try:
                payload = await self.fetch_json(strategy.endpoint_key, target_url)
            except UpstreamError as exc:
                last_error = exc
            else:
                if strategy.is_usable(payload, last=position + 1 == len(strategies)):
                    if position:
                        logger.info(
                            "Fallback strategy %s succeeded",
                            strategy.endpoint_key,
                            extra={"event": "upstream.fallback_ok", "strategy": strategy.endpoint_key},
                        )
                    return FetchResult(payload=payload, variant=strategy.variant, endpoint_key=strategy.endpoint_key)
                last_error = UpstreamStatusError(upstream_message(payload), payload=payload)

            if position + 1 < len(strategies):
                logger.warning(
                    "Strategy %s failed (%s); trying %s",
                    strategy.endpoint_key,
                    last_error,
                    strategies[position + 1].endpoint_key,
                    extra={"event": "upstream.fallback", "strategy": strategy.endpoint_key},
                )

        raise last_error or UpstreamError("All upstream strategies failed")
