"""
Main CLI application for web-grab.

Provides the command-line interface for:
- Downloading a single file
- Downloading a list of files concurrently
- Mirroring a website
"""

import asyncio
import signal
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from web_grab import __version__
from web_grab.config import Settings, load_config
from web_grab.config.loader import get_default_config_path
from web_grab.core.cancellation import CancellationToken
from web_grab.core.exceptions import (
    ConfigurationError,
    OperationCancelledError,
    WebGrabError,
)
from web_grab.crawler import MirrorCrawler, parse_list_option
from web_grab.transfer import Downloader, Fetcher, read_url_list
from web_grab.utils.logging import setup_logging, get_logger
from web_grab.utils.units import format_bytes, parse_rate_limit

T = TypeVar("T")

# Initialize Typer app
app = typer.Typer(
    name="web-grab",
    help="web-grab - Download files and mirror websites over HTTP(S)",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
logger = get_logger(__name__)

BACKGROUND_LOG_FILE = "web-grab-log"


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]web-grab[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file",
        exists=True,
        dir_okay=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable verbose logging",
    ),
) -> None:
    """
    web-grab - Download files and mirror websites.

    Use 'web-grab --help' for command list.
    """
    try:
        settings = load_config(config_file or get_default_config_path())
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    # Setup logging
    setup_logging(settings.logging, level="DEBUG" if verbose else None)
    ctx.obj = settings


def _apply_overrides(settings: Settings, section: str, **values: Any) -> None:
    """
    Copy command-line values onto a settings section, skipping None.

    Raises:
        ConfigurationError: If a value fails validation
    """
    target = getattr(settings, section)
    for key, value in values.items():
        if value is None:
            continue
        try:
            setattr(target, key, value)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid value for {key}: {value!r}",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e


def _install_signal_handlers(token: CancellationToken) -> None:
    """Route SIGINT/SIGTERM to the cancellation token."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, token.cancel)
        except (NotImplementedError, RuntimeError, ValueError):
            # Not supported on this platform or outside the main thread
            logger.debug(f"Cannot install handler for {sig.name}")


def _run(factory: Callable[[CancellationToken], Awaitable[T]]) -> T:
    """Run an async command with a fresh cancellation token, mapping errors to exit codes."""
    token = CancellationToken()

    async def runner() -> T:
        _install_signal_handlers(token)
        return await factory(token)

    try:
        return asyncio.run(runner())
    except (KeyboardInterrupt, OperationCancelledError):
        console.print("\n[yellow]Download interrupted by user[/yellow]")
        raise typer.Exit(1)
    except WebGrabError as e:
        console.print(f"[red]Error:[/red] {e}")
        logger.debug("Command failed", exc_info=True)
        raise typer.Exit(1)


@app.command()
def get(
    ctx: typer.Context,
    url: str = typer.Argument(
        ...,
        help="URL to download",
    ),
    output: Optional[str] = typer.Option(
        None,
        "--output-document",
        "-O",
        help="Name of the output file",
    ),
    directory: Optional[Path] = typer.Option(
        None,
        "--directory-prefix",
        "-P",
        help="Directory to save the file in",
    ),
    rate_limit: Optional[str] = typer.Option(
        None,
        "--rate-limit",
        help="Maximum download speed, e.g. 200k or 2M",
    ),
    background: bool = typer.Option(
        False,
        "--background",
        "-B",
        help=f"Write progress to '{BACKGROUND_LOG_FILE}' instead of the console",
    ),
) -> None:
    """
    Download a single file.

    Example:
        web-grab get https://example.com/file.zip -O file.zip --rate-limit 500k
    """
    settings: Settings = ctx.obj
    try:
        parse_rate_limit(rate_limit)
        _apply_overrides(settings, "fetch", rate_limit=rate_limit, output_dir=directory)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    async def download(token: CancellationToken) -> None:
        async with Fetcher(settings.fetch, token=token) as fetcher:
            if not background:
                await Downloader(fetcher).download(url, output_name=output)
                return

            console.print("Background download started")
            console.print(f"Output will be written to '{BACKGROUND_LOG_FILE}'")
            with open(BACKGROUND_LOG_FILE, "w", encoding="utf-8") as log_stream:
                task = Downloader(fetcher, stream=log_stream).start_background(
                    url, output_name=output)
                await task

    _run(download)


@app.command()
def batch(
    ctx: typer.Context,
    input_file: Path = typer.Argument(
        ...,
        help="File with one URL per line",
        dir_okay=False,
    ),
    directory: Optional[Path] = typer.Option(
        None,
        "--directory-prefix",
        "-P",
        help="Directory to save the files in",
    ),
    max_concurrent: Optional[int] = typer.Option(
        None,
        "--max-concurrent",
        help="Maximum simultaneous downloads",
        min=1,
        max=100,
    ),
    rate_limit: Optional[str] = typer.Option(
        None,
        "--rate-limit",
        help="Maximum speed per download, e.g. 200k or 2M",
    ),
) -> None:
    """
    Download every URL listed in a file.

    Example:
        web-grab batch urls.txt -P downloads --max-concurrent 3
    """
    settings: Settings = ctx.obj
    try:
        urls = read_url_list(input_file)
        parse_rate_limit(rate_limit)
        _apply_overrides(settings, "fetch", rate_limit=rate_limit, output_dir=directory)
        _apply_overrides(settings, "batch", max_concurrent=max_concurrent)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    async def download_all(token: CancellationToken):
        async with Fetcher(settings.fetch, token=token) as fetcher:
            return await Downloader(fetcher).download_many(
                urls, max_concurrent=settings.batch.max_concurrent)

    result = _run(download_all)

    if result.failed:
        table = Table(title="Failed downloads", show_header=True)
        table.add_column("URL", style="cyan")
        table.add_column("Error", style="red")
        for failed_url, error in result.failed:
            table.add_row(failed_url, error)
        console.print(table)

    if result.cancelled:
        console.print("[yellow]Batch interrupted by user[/yellow]")
        raise typer.Exit(1)
    if result.success_count == 0:
        raise typer.Exit(1)


@app.command()
def mirror(
    ctx: typer.Context,
    url: str = typer.Argument(
        ...,
        help="Root URL of the site to mirror",
    ),
    reject: Optional[str] = typer.Option(
        None,
        "--reject",
        "-R",
        help="Comma-separated file extensions to skip, e.g. png,jpg",
    ),
    exclude: Optional[str] = typer.Option(
        None,
        "--exclude-directories",
        "-X",
        help="Comma-separated path substrings to skip, e.g. /private,/tmp",
    ),
    depth: Optional[int] = typer.Option(
        None,
        "--level",
        "-l",
        help="Maximum link depth (default 3)",
        min=0,
        max=50,
    ),
    max_concurrent: Optional[int] = typer.Option(
        None,
        "--max-concurrent",
        help="Maximum simultaneous fetches (default 5)",
        min=1,
        max=100,
    ),
    directory: Optional[Path] = typer.Option(
        None,
        "--directory-prefix",
        "-P",
        help="Directory the mirror is created in",
    ),
    rate_limit: Optional[str] = typer.Option(
        None,
        "--rate-limit",
        help="Maximum speed per fetch, e.g. 200k or 2M",
    ),
) -> None:
    """
    Mirror a website into a local directory.

    Example:
        web-grab mirror https://example.com -R png,jpg -X /private -l 2
    """
    settings: Settings = ctx.obj
    try:
        parse_rate_limit(rate_limit)
        _apply_overrides(settings, "fetch", rate_limit=rate_limit, output_dir=directory)
        _apply_overrides(
            settings,
            "mirror",
            reject_extensions=parse_list_option(reject) if reject else None,
            exclude_paths=parse_list_option(exclude) if exclude else None,
            max_depth=depth,
            max_concurrent=max_concurrent,
        )
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    rate = settings.fetch.rate_limit_bytes
    rate_text = f"{format_bytes(rate)}/s" if rate else "none"
    console.print(Panel(
        f"[bold]Mirroring:[/bold] {url}\n"
        f"[dim]Depth: {settings.mirror.max_depth} | "
        f"Concurrency: {settings.mirror.max_concurrent} | "
        f"Rate limit: {rate_text}[/dim]",
        title="web-grab mirror",
        border_style="blue",
    ))

    async def run_mirror(token: CancellationToken):
        async with Fetcher(settings.fetch, token=token) as fetcher:
            return await MirrorCrawler(settings.mirror, fetcher).mirror(url)

    result = _run(run_mirror)

    console.print(f"\nMirroring completed. Visited {result.visited} URLs.")
    console.print(Panel(
        f"Saved: [bold]{result.saved}[/bold]\n"
        f"Failed: [bold]{result.failed}[/bold]\n"
        f"Skipped (depth): [bold]{result.skipped_depth}[/bold]\n"
        f"Duration: [bold]{result.duration_seconds:.1f}s[/bold]\n"
        f"Directory: [dim]{result.mirror_root}[/dim]",
        title="Summary",
        border_style="yellow" if result.cancelled else "green",
    ))

    if result.cancelled:
        console.print("[yellow]Mirror interrupted by user[/yellow]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
