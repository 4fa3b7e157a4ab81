from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional

import httpx

from ..config import AppConfig
from .utils import sanitize_title, timestamp_ms

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, Optional[int]], None]


class FileTooLargeError(RuntimeError):
    def __init__(self, limit: int, seen: int) -> None:
        super().__init__(f"File exceeds the {limit} byte limit ({seen} bytes)")
        self.limit = limit
        self.seen = seen


@dataclass(frozen=True, slots=True)
class DownloadJob:
    url: str
    filename: str
    max_size_bytes: Optional[int] = None
    label: str = ""


@dataclass(frozen=True, slots=True)
class DownloadResult:
    url: str
    success: bool
    path: Optional[Path] = None
    bytes_written: int = 0
    error: Optional[str] = None


def build_filename(
    platform: str,
    title: Optional[str],
    label: Optional[str],
    ext: str,
    *,
    index: Optional[int] = None,
    stamp: Optional[int] = None,
) -> str:
    """``<platform>_<title>_<label>_<timestamp>[_<index>].<ext>`` with unsafe characters removed."""
    parts = [platform, sanitize_title(title, fallback="media")]
    if label:
        parts.append(sanitize_title(label, fallback="").replace(" ", "_"))
    parts.append(str(stamp if stamp is not None else timestamp_ms()))
    if index is not None:
        parts.append(str(index))
    stem = "_".join(part for part in parts if part)
    return f"{stem}.{ext.lstrip('.').lower() or 'bin'}"


def unique_path(directory: Path, filename: str) -> Path:
    """Return ``directory/filename``, adding ``-1``, ``-2``... if it already exists."""
    candidate = directory / filename
    counter = 1
    while candidate.exists() or candidate.with_name(candidate.name + ".part").exists():
        candidate = directory / f"{Path(filename).stem}-{counter}{Path(filename).suffix}"
        counter += 1
    return candidate


class Downloader:
    """Stream remote media files into ``out_dir`` without buffering them in memory."""

    def __init__(
        self,
        out_dir: Path,
        config: AppConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.out_dir = Path(out_dir)
        self.out_dir.mkdir(parents=True, exist_ok=True)
        self.config = config
        self._transport = transport

    async def download_all(
        self,
        jobs: Iterable[DownloadJob],
        progress_factory: Callable[[DownloadJob], ProgressCallback] | None = None,
    ) -> List[DownloadResult]:
        """Download every job strictly one after another."""
        results: List[DownloadResult] = []
        for job in jobs:
            progress = progress_factory(job) if progress_factory else None
            results.append(await self.download(job, progress=progress))
        return results

    async def download(self, job: DownloadJob, *, progress: ProgressCallback | None = None) -> DownloadResult:
        destination = unique_path(self.out_dir, job.filename)
        return await self.download_to(job.url, destination, max_size_bytes=job.max_size_bytes, progress=progress)

    async def download_to(
        self,
        url: str,
        destination: Path,
        *,
        max_size_bytes: Optional[int] = None,
        progress: ProgressCallback | None = None,
    ) -> DownloadResult:
        """Stream ``url`` to ``destination``; oversize or failed transfers leave no file behind."""
        partial = destination.with_name(destination.name + ".part")
        written = 0
        logger.info("Downloading %s", destination.name, extra={"event": "download.start", "url": url[:80]})
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.download_timeout_seconds),
                headers={"User-Agent": self.config.desktop_user_agent},
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    total = _declared_length(response)
                    if max_size_bytes is not None and total is not None and total > max_size_bytes:
                        raise FileTooLargeError(max_size_bytes, total)
                    if progress:
                        progress(0, total)
                    with partial.open("wb") as handle:
                        async for chunk in response.aiter_bytes(self.config.chunk_size):
                            written += len(chunk)
                            if max_size_bytes is not None and written > max_size_bytes:
                                raise FileTooLargeError(max_size_bytes, written)
                            handle.write(chunk)
                            if progress:
                                progress(written, total)
            partial.replace(destination)
        except (httpx.HTTPError, FileTooLargeError, OSError) as exc:
            partial.unlink(missing_ok=True)
            message = _describe(exc)
            logger.error(
                "Download failed for %s: %s",
                url[:80],
                message,
                extra={"event": "download.failed", "url": url[:80], "bytes": written},
            )
            return DownloadResult(url=url, success=False, bytes_written=written, error=message)

        logger.info(
            "Saved %s",
            destination,
            extra={"event": "download.done", "path": str(destination), "bytes": written},
        )
        return DownloadResult(url=url, success=True, path=destination, bytes_written=written)


def _declared_length(response: httpx.Response) -> Optional[int]:
    value = response.headers.get("content-length")
    if value and value.isdigit():
        return int(value)
    return None


def _describe(exc: BaseException) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return "Download timed out"
    if isinstance(exc, httpx.HTTPStatusError):
        return f"Server responded with {exc.response.status_code}"
    if isinstance(exc, httpx.HTTPError):
        return "Network error while downloading"
    return str(exc)
