"""FastAPI front end: platform listing, link resolution and a streaming download proxy.

Run with ``prenivdl serve`` or ``uvicorn prenivdl.server:app``.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import uvicorn
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from . import __version__
from .config import AppConfig, load_config
from .platforms import platform_listing
from .resolver import MEDIA_UNAVAILABLE_MESSAGE, MediaResolver, ResolveError
from .upstream import UpstreamError
from .core.utils import sanitize_http_filename

logger = logging.getLogger(__name__)

CONTENT_TYPES: dict[str, tuple[str, str]] = {
    "video": ("mp4", "video/mp4"),
    "audio": ("mp3", "audio/mpeg"),
    "image": ("jpg", "image/jpeg"),
}


class ApiError(Exception):
    """Converted into the ``{"success": false, "error": ...}`` envelope."""

    def __init__(self, status_code: int, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.extra = extra


def _error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, **extra})


def create_app(
    config: Optional[AppConfig] = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the API application.

    ``transport`` is handed to every outbound httpx client (resolver lookups
    and proxied downloads) so tests can run fully offline.
    """
    config = config or load_config()
    resolver = MediaResolver(config, transport=transport)
    started = time.monotonic()

    app = FastAPI(title="PrenivDL API Server", version=__version__)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    app.state.config = config
    app.state.resolver = resolver

    @app.exception_handler(ApiError)
    async def _api_error(_: Request, exc: ApiError) -> JSONResponse:
        return _error_response(exc.status_code, exc.message, **exc.extra)

    @app.exception_handler(Exception)
    async def _unhandled(_: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled server error", extra={"event": "server.unhandled"})
        return _error_response(500, str(exc) or "Internal server error")

    @app.get("/")
    async def index() -> dict[str, Any]:
        return {
            "name": "PrenivDL API Server",
            "version": __version__,
            "description": "Universal Social Media Downloader API",
            "endpoints": {
                "GET /health": "Health check",
                "GET /api/platforms": "List all supported platforms",
                "GET /api/info?url=<url>": "Get video info and download links",
                "GET /api/download?url=<url>&filename=<name>&type=<video|audio|image>": "Download file",
            },
            "documentation": "/docs",
        }

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - started, 3),
        }

    @app.get("/api/platforms")
    async def platforms() -> dict[str, Any]:
        return {"success": True, "platforms": platform_listing()}

    @app.get("/api/info")
    async def info(url: Optional[str] = Query(default=None)) -> dict[str, Any]:
        if not url or not url.strip():
            raise ApiError(400, "URL parameter is required")
        try:
            spec = resolver.platform_for(url.strip())
            resolution = await resolver.resolve(url, platform_id=spec.id)
        except ResolveError as exc:
            raise ApiError(400, str(exc)) from exc
        except UpstreamError as exc:
            logger.warning("Upstream failure: %s", exc, extra={"event": "info.upstream_failed"})
            extra = {"platform": spec.id}
            status_code = getattr(exc, "status_code", None)
            if status_code:
                extra["upstream_status"] = status_code
            raise ApiError(500, str(exc) or "Failed to fetch from API", **extra) from exc

        body: dict[str, Any] = {
            "success": True,
            "platform": spec.id,
            "data": resolution.result.as_payload(),
        }
        if resolution.is_empty:
            body["message"] = MEDIA_UNAVAILABLE_MESSAGE
        return body

    @app.get("/api/download")
    async def download(
        url: Optional[str] = Query(default=None),
        filename: Optional[str] = Query(default=None),
        type: Optional[str] = Query(default="video"),
    ) -> StreamingResponse:
        if not url or not url.strip():
            raise ApiError(400, "URL parameter is required")
        ext, fallback_type = CONTENT_TYPES.get(type or "video", CONTENT_TYPES["video"])
        safe_name = sanitize_http_filename(filename)
        logger.info("Proxying %s download", type, extra={"event": "proxy.start", "url": url[:80]})

        client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.proxy_timeout_seconds),
            headers={"User-Agent": config.desktop_user_agent},
            transport=transport,
            follow_redirects=True,
        )
        try:
            upstream = await client.send(client.build_request("GET", url.strip()), stream=True)
            upstream.raise_for_status()
        except httpx.HTTPError as exc:
            await client.aclose()
            logger.error("Proxy download failed: %s", exc, extra={"event": "proxy.failed", "url": url[:80]})
            raise ApiError(500, "Failed to download file") from exc

        async def _close() -> None:
            await upstream.aclose()
            await client.aclose()

        headers = {"Content-Disposition": f'attachment; filename="{safe_name}.{ext}"'}
        if upstream.headers.get("content-length") and "content-encoding" not in upstream.headers:
            headers["Content-Length"] = upstream.headers["content-length"]
        return StreamingResponse(
            upstream.aiter_bytes(),
            media_type=upstream.headers.get("content-type") or fallback_type,
            headers=headers,
            background=BackgroundTask(_close),
        )

    return app


def __getattr__(name: str) -> Any:
    # ``uvicorn prenivdl.server:app`` builds the app from the environment on first access.
    if name == "app":
        return create_app()
    raise AttributeError(name)


def run(config: Optional[AppConfig] = None, host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Serve the API with uvicorn."""
    config = config or load_config()
    uvicorn.run(
        create_app(config),
        host=host or config.server_host,
        port=port or config.server_port,
        log_config=None,
    )
