"""Interactive terminal front end: resolve a link, pick a rendition, download it."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, DownloadColumn, Progress, TextColumn, TransferSpeedColumn
from rich.prompt import Prompt
from rich.table import Table

from . import __version__
from .config import AppConfig, ConfigError, load_config
from .core.downloader import DownloadJob, Downloader, DownloadResult, ProgressCallback, build_filename
from .core.models import UnifiedLink, UnifiedResult
from .core.utils import format_bytes, format_duration, timestamp_ms
from .logging_utils import configure_logging
from .platforms import LISTING_ORDER, PLATFORMS_BY_ID
from .resolver import MediaResolver, MediaUnavailableError, PlatformNotConfiguredError, ResolveError, UnsupportedPlatformError
from .server import run as serve_api
from .upstream import (
    InvalidResponseError,
    UpstreamError,
    UpstreamHTTPError,
    UpstreamNetworkError,
    UpstreamStatusError,
    UpstreamTimeoutError,
)

logger = logging.getLogger(__name__)

DOWNLOAD_ALL = "a"
CANCEL = "c"


class InvalidChoiceError(ValueError):
    pass


def parse_choice(raw: str, links: Sequence[UnifiedLink]) -> Optional[List[UnifiedLink]]:
    """Translate a menu answer into the links to fetch; ``None`` means cancel.

    Accepts a 1-based number, ``a`` (download all, offered only when there is
    more than one link) or ``c``.
    """
    answer = raw.strip().lower()
    if answer == CANCEL:
        return None
    if answer == DOWNLOAD_ALL and len(links) > 1:
        return list(links)
    if answer.isdigit() and 1 <= int(answer) <= len(links):
        return [links[int(answer) - 1]]
    raise InvalidChoiceError(f"Invalid choice: {raw!r}")


def describe_error(exc: Exception) -> str:
    """User-facing text for a failed lookup."""
    if isinstance(exc, UpstreamTimeoutError):
        return "Request timed out. Please try again."
    if isinstance(exc, UpstreamHTTPError):
        return f"API responded with HTTP {exc.status_code}: {exc}"
    if isinstance(exc, UpstreamNetworkError):
        return "Network error. Please check your connection."
    if isinstance(exc, UpstreamStatusError):
        return f"API error: {exc}"
    if isinstance(exc, InvalidResponseError):
        return f"Unexpected API response: {exc}"
    if isinstance(exc, UnsupportedPlatformError):
        return f"Unsupported URL: {exc.url}"
    if isinstance(exc, (PlatformNotConfiguredError, MediaUnavailableError, ResolveError, UpstreamError)):
        return str(exc)
    return f"Unexpected error: {exc}"


def jobs_for(
    result: UnifiedResult,
    links: Sequence[UnifiedLink],
    config: AppConfig,
    *,
    stamp: Optional[int] = None,
) -> List[DownloadJob]:
    """One ``DownloadJob`` per chosen link; audio transfers get the size cap."""
    stamp = stamp if stamp is not None else timestamp_ms()
    jobs = []
    for index, link in enumerate(links, start=1):
        filename = build_filename(
            result.platform,
            result.title,
            link.quality,
            link.format,
            index=index if len(links) > 1 else None,
            stamp=stamp,
        )
        jobs.append(
            DownloadJob(
                url=link.url,
                filename=filename,
                max_size_bytes=config.max_audio_bytes if link.type == "audio" else None,
                label=link.quality,
            )
        )
    return jobs


def render_info(result: UnifiedResult) -> Panel:
    lines = [f"[bold]{result.title or 'Untitled'}[/bold]"]
    if result.author:
        lines.append(f"Author: {result.author}")
    duration = format_duration(result.duration)
    if duration:
        lines.append(f"Duration: {duration}")
    lines.append(f"Links: {len(result.links)}")
    spec = PLATFORMS_BY_ID.get(result.platform)
    return Panel.fit("\n".join(lines), title=spec.name if spec else result.platform)


def render_menu(links: Sequence[UnifiedLink]) -> Table:
    table = Table(title="Available downloads")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Quality", style="white")
    table.add_column("Type")
    table.add_column("Format")
    for index, link in enumerate(links, start=1):
        table.add_row(str(index), link.quality, link.type, link.format)
    return table


def ask_choice(console: Console, links: Sequence[UnifiedLink]) -> Optional[List[UnifiedLink]]:
    if len(links) == 1:
        console.print(f"Single option found, downloading [bold]{links[0].quality}[/bold]")
        return list(links)
    console.print(render_menu(links))
    hint = f"1-{len(links)}, '{DOWNLOAD_ALL}' for all, '{CANCEL}' to cancel"
    while True:
        answer = Prompt.ask(f"Choose ({hint})", console=console)
        try:
            return parse_choice(answer, links)
        except InvalidChoiceError as exc:
            console.print(f"[red]{exc}[/red]")


def _progress_factory(progress: Progress) -> Callable[[DownloadJob], ProgressCallback]:
    def factory(job: DownloadJob) -> ProgressCallback:
        task_id = progress.add_task(job.label or job.filename, total=None)

        def update(done: int, total: Optional[int]) -> None:
            progress.update(task_id, completed=done, total=total)

        return update

    return factory


async def download_links(
    console: Console,
    config: AppConfig,
    result: UnifiedResult,
    links: Sequence[UnifiedLink],
    output_dir: Path,
) -> List[DownloadResult]:
    downloader = Downloader(output_dir, config)
    with Progress(
        TextColumn("{task.description}"),
        BarColumn(bar_width=40),
        DownloadColumn(),
        TransferSpeedColumn(),
        console=console,
    ) as progress:
        results = await downloader.download_all(jobs_for(result, links, config), _progress_factory(progress))
    for outcome in results:
        if outcome.success and outcome.path:
            console.print(f"[green]OK[/green] {outcome.path} ({format_bytes(outcome.bytes_written)})")
        else:
            console.print(f"[red]FAILED[/red] {outcome.url[:80]} -> {outcome.error}")
    return results


async def run_download(
    config: AppConfig,
    url: str,
    *,
    platform_id: Optional[str] = None,
    output_dir: Optional[Path] = None,
    console: Optional[Console] = None,
    resolver: Optional[MediaResolver] = None,
) -> int:
    """Resolve ``url``, prompt for a rendition and download it. Returns the exit code."""
    console = console or Console()
    resolver = resolver or MediaResolver(config)
    try:
        with console.status("[bold cyan]Fetching media info...[/bold cyan]"):
            resolution = await resolver.resolve(url, platform_id=platform_id, require_media=True)
    except (ResolveError, UpstreamError) as exc:
        logger.error("Lookup failed: %s", exc, extra={"event": "cli.lookup_failed", "url": url[:80]})
        console.print(f"[red]{describe_error(exc)}[/red]")
        return 1

    result = resolution.result
    console.print(render_info(result))
    chosen = await asyncio.to_thread(ask_choice, console, result.links)
    if chosen is None:
        console.print("Canceled.")
        return 0

    results = await download_links(console, config, result, chosen, output_dir or config.output_dir)
    failed = sum(1 for outcome in results if not outcome.success)
    console.print(f"Completed. Success: {len(results) - failed} | Failed: {failed}")
    return 1 if failed else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="prenivdl", description="Universal social-media downloader")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--env-file", type=Path, help="Path to a .env file")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_download_command(name: str, help_text: str) -> None:
        command = sub.add_parser(name, help=help_text)
        command.add_argument("url", nargs="?", help="Source URL (prompted for when omitted)")
        command.add_argument("-o", "--output-dir", type=Path, help="Directory for downloaded files")

    add_download_command("get", "Detect the platform from the URL and download")
    for platform_id in LISTING_ORDER:
        add_download_command(platform_id, f"Download from {PLATFORMS_BY_ID[platform_id].name}")

    serve = sub.add_parser("serve", help="Run the HTTP API server")
    serve.add_argument("--host")
    serve.add_argument("--port", type=int)
    return parser


async def main_async(args: argparse.Namespace, config: AppConfig, url: str, console: Console) -> int:
    platform_id = None if args.command == "get" else args.command
    return await run_download(config, url, platform_id=platform_id, output_dir=args.output_dir, console=console)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args.env_file)
    except ConfigError as exc:
        Console(stderr=True).print(f"[red]Configuration error: {exc}[/red]")
        return 1

    if args.command == "serve":
        configure_logging(config)
        serve_api(config, host=args.host, port=args.port)
        return 0

    configure_logging(config, console_level=logging.WARNING)
    console = Console()
    try:
        url = args.url or Prompt.ask("[bold cyan]URL[/bold cyan]", console=console)
        if not url.strip():
            console.print("[red]A URL is required.[/red]")
            return 1
        return asyncio.run(main_async(args, config, url.strip(), console))
    except KeyboardInterrupt:
        console.print("\nCanceled.")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
