"""
Single-file and batch downloads.

Downloads go through the Fetcher and land in one file each. Status
lines (start/finish times, sizes, progress) are written to a console
stream; diagnostics go to the logger.
"""

import asyncio
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TextIO

from web_grab.config.settings import FetchSettings
from web_grab.core.exceptions import (
    ConfigurationError,
    FetchError,
    OperationCancelledError,
    PersistenceError,
)
from web_grab.core.paths import download_filename
from web_grab.transfer.fetcher import Fetcher
from web_grab.utils.logging import get_logger
from web_grab.utils.units import format_bytes

logger = get_logger(__name__)

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class DownloadResult:
    """Outcome of one successful download."""

    url: str
    path: Path
    bytes_written: int
    content_length: int | None
    duration_seconds: float


@dataclass
class BatchResult:
    """
    Outcome of a batch download.

    Attributes:
        total: Number of URLs in the batch
        succeeded: Results of successful downloads
        failed: (url, error message) for each failed download
        cancelled: Whether the batch stopped early on cancellation
    """

    total: int
    succeeded: list[DownloadResult] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)
    cancelled: bool = False

    @property
    def success_count(self) -> int:
        return len(self.succeeded)


def read_url_list(path: Path) -> list[str]:
    """
    Read one URL per line, skipping blank lines and '#' comments.

    Raises:
        ConfigurationError: If the file cannot be read or holds no URLs
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"Cannot open input file: {e}", details={"path": str(path)}) from e

    urls = [
        line.strip()
        for line in text.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]
    if not urls:
        raise ConfigurationError(
            "No URLs found in input file", details={"path": str(path)})
    return urls


class Downloader:
    """
    Downloads URLs to local files.

    Example:
        >>> async with Fetcher(settings.fetch) as fetcher:
        ...     downloader = Downloader(fetcher)
        ...     result = await downloader.download("https://example.com/a.zip")
    """

    def __init__(
        self,
        fetcher: Fetcher,
        stream: TextIO | None = None,
    ) -> None:
        """
        Initialize downloader.

        Args:
            fetcher: Fetcher used for every request; its settings supply
                the rate limit and default output directory
            stream: Console stream for status lines (default: stdout)
        """
        self.fetcher = fetcher
        self.stream = stream if stream is not None else sys.stdout

    @property
    def settings(self) -> FetchSettings:
        return self.fetcher.settings

    def _say(self, message: str) -> None:
        self.stream.write(message + "\n")
        self.stream.flush()

    def resolve_output_path(
        self,
        url: str,
        output_name: str | None = None,
        output_dir: Path | None = None,
    ) -> Path:
        """Where a download of url is written."""
        directory = Path(output_dir) if output_dir is not None else self.settings.output_dir
        return directory / (output_name or download_filename(url))

    async def download(
        self,
        url: str,
        output_name: str | None = None,
        output_dir: Path | None = None,
        quiet: bool = False,
    ) -> DownloadResult:
        """
        Download one URL to one file.

        Args:
            url: URL to fetch
            output_name: File name (default: last path segment or index.html)
            output_dir: Target directory (default: settings.output_dir)
            quiet: Terse output for batch runs

        Returns:
            DownloadResult

        Raises:
            TransportError: If the URL is invalid or the request fails
            HTTPStatusError: If the status is not 200
            PersistenceError: If the file cannot be created or written
            OperationCancelledError: If cancellation is requested
        """
        self.fetcher.token.raise_if_cancelled()

        started = time.monotonic()
        if not quiet:
            self._say(f"Starting download at {datetime.now().strftime(TIME_FORMAT)}")

        async with self.fetcher.open(url) as response:
            if not quiet:
                self._say(f"Response received: {response.status_code} {response.reason}")
                if response.content_length:
                    self._say(f"Content size: {format_bytes(response.content_length)}")

            path = self.resolve_output_path(url, output_name, output_dir)
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                sink = open(path, "wb")
            except OSError as e:
                raise PersistenceError(
                    f"Failed to create file: {e}", path=str(path)) from e

            with sink:
                try:
                    written = await self.fetcher.stream_to(
                        response, sink, path.name, quiet=quiet, stream=self.stream)
                except OSError as e:
                    raise PersistenceError(
                        f"Failed to write file: {e}", path=str(path)) from e

        duration = time.monotonic() - started
        logger.debug(f"Saved {url} to {path} ({written} bytes in {duration:.2f}s)")

        if not quiet:
            self._say(f"Downloaded successfully: {url}")
            self._say(f"Finished at {datetime.now().strftime(TIME_FORMAT)}")
            self._say(f"Total downloaded: {format_bytes(written)}")

        return DownloadResult(
            url=url,
            path=path,
            bytes_written=written,
            content_length=response.content_length,
            duration_seconds=duration,
        )

    def start_background(
        self,
        url: str,
        output_name: str | None = None,
        output_dir: Path | None = None,
    ) -> "asyncio.Task[DownloadResult]":
        """
        Start a download without waiting for it.

        Must be called from a running event loop. The returned task
        raises the same errors as download() when awaited.
        """
        logger.info(f"Background download started: {url}")
        return asyncio.create_task(
            self.download(url, output_name, output_dir),
            name=f"download:{url}",
        )

    async def download_many(
        self,
        urls: list[str],
        max_concurrent: int = 5,
        output_dir: Path | None = None,
    ) -> BatchResult:
        """
        Download several URLs with at most max_concurrent in flight.

        Failures are recorded and never stop the other downloads.

        Args:
            urls: URLs to fetch, one file each
            max_concurrent: Concurrency budget
            output_dir: Shared target directory

        Returns:
            BatchResult with per-URL outcomes
        """
        result = BatchResult(total=len(urls))
        semaphore = asyncio.Semaphore(max_concurrent)
        token = self.fetcher.token

        self._say(
            f"Starting concurrent download of {len(urls)} files "
            f"with {max_concurrent} max concurrency..."
        )

        async def worker(url: str) -> None:
            async with semaphore:
                if token.cancelled:
                    return
                try:
                    download = await self.download(url, output_dir=output_dir, quiet=True)
                except OperationCancelledError:
                    return
                except (FetchError, PersistenceError) as e:
                    logger.warning(f"Error downloading {url}: {e}")
                    self._say(f"Error downloading {url}: {e}")
                    result.failed.append((url, str(e)))
                    return
                result.succeeded.append(download)
                self._say(f"Finished: {url}")

        tasks = []
        for url in urls:
            if token.cancelled:
                self._say("Concurrent download interrupted.")
                break
            tasks.append(asyncio.create_task(worker(url)))

        await asyncio.gather(*tasks)

        result.cancelled = token.cancelled
        self._say(
            f"\nDownload summary: {result.success_count}/{result.total} "
            f"files downloaded successfully"
        )
        return result
