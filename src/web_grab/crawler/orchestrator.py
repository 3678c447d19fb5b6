"""
Recursive site mirroring.

MirrorCrawler walks a site from its root URL, following same-host links
up to a maximum depth with a bounded number of fetches in flight, and
writes every page and resource into a local directory tree whose links
are rewritten to point at each other.

Per task the flow is:
    queued -> fetching -> (leaf persisted | expanded and persisted) -> done

Before a worker is started for a link, the scheduler checks in order:
cancellation requested (stop silently), depth over the limit (skip and
log), URL already claimed (skip silently). Claiming a URL in the
VisitedSet is the only serialization point of the run, so exactly one
worker ever exists per URL.
"""

import asyncio
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TextIO
from urllib.parse import urlparse

from web_grab.config.settings import MirrorSettings
from web_grab.core.exceptions import (
    ExtractionError,
    HTTPStatusError,
    OperationCancelledError,
    PersistenceError,
    TransportError,
)
from web_grab.core.paths import local_path, mirror_dir_name
from web_grab.crawler.filters import URLFilter
from web_grab.crawler.visited import CrawlTask, VisitedSet
from web_grab.extraction.links import extract_links, rewrite_document
from web_grab.transfer.fetcher import FetchResponse, Fetcher, validate_url
from web_grab.transfer.progress import ProgressWriter
from web_grab.transfer.rate_limiter import RateLimiter
from web_grab.utils.logging import get_logger, get_logger_with_context

logger = get_logger(__name__)


class CrawlStatus(str, Enum):
    """Status of a mirror run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class MirrorResult:
    """
    Summary of a mirror run.

    Attributes:
        root_url: URL the mirror started from
        mirror_root: Directory holding the mirrored files
        visited: URLs claimed in the visited set
        fetched: Fetch attempts made
        saved: Files written to disk
        failed: Tasks abandoned on a transport, HTTP, or persistence error
        skipped_depth: Links not fetched because they were too deep
        errors: One entry per failed task
    """

    root_url: str
    mirror_root: Path
    status: CrawlStatus = CrawlStatus.PENDING
    visited: int = 0
    fetched: int = 0
    saved: int = 0
    failed: int = 0
    skipped_depth: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_seconds: float = 0.0
    errors: list[dict] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return self.status == CrawlStatus.CANCELLED


class MirrorCrawler:
    """
    Mirrors a site into a local, link-consistent directory tree.

    A run uses one VisitedSet, one asyncio.Semaphore for the concurrency
    budget, and one set of outstanding worker tasks that is joined
    before mirror() returns. Each worker holds one budget unit while it
    fetches and persists its page; links it discovers are scheduled as
    new workers that wait for their own unit.

    Example:
        >>> async with Fetcher(settings.fetch, token=token) as fetcher:
        ...     crawler = MirrorCrawler(settings.mirror, fetcher)
        ...     result = await crawler.mirror("https://example.com/")
        ...     print(f"Visited {result.visited} URLs")
    """

    def __init__(
        self,
        settings: MirrorSettings,
        fetcher: Fetcher,
        output_dir: Path | None = None,
        stream: TextIO | None = None,
    ) -> None:
        """
        Initialize crawler.

        Args:
            settings: Mirror configuration (depth, concurrency, filters)
            fetcher: Fetcher for all requests; its token is the run's
                cancellation token
            output_dir: Directory the mirror directory is created in
                (default: the fetcher's output_dir)
            stream: Console stream for per-file completion lines
        """
        self.settings = settings
        self.fetcher = fetcher
        self.token = fetcher.token
        self.output_dir = Path(output_dir) if output_dir is not None else fetcher.settings.output_dir
        self.stream = stream if stream is not None else sys.stdout

        # Per-run state, set up by mirror()
        self._visited = VisitedSet()
        self._semaphore: asyncio.Semaphore | None = None
        self._filter: URLFilter | None = None
        self._tasks: set[asyncio.Task] = set()
        self._result: MirrorResult | None = None

    @property
    def visited(self) -> VisitedSet:
        """URLs claimed during the current or last run."""
        return self._visited

    def _init_run(self, root_url: str) -> MirrorResult:
        host = urlparse(root_url).hostname or ""
        mirror_root = self.output_dir / mirror_dir_name(root_url)

        self._visited = VisitedSet()
        self._semaphore = asyncio.Semaphore(self.settings.max_concurrent)
        self._filter = URLFilter(
            host=host,
            reject_extensions=self.settings.reject_extensions,
            exclude_paths=self.settings.exclude_paths,
        )
        self._tasks = set()
        self._result = MirrorResult(root_url=root_url, mirror_root=mirror_root)
        return self._result

    async def mirror(self, root_url: str) -> MirrorResult:
        """
        Mirror a site starting from root_url.

        Individual fetch, HTTP and disk failures are logged and counted;
        they never stop the run.

        Args:
            root_url: Absolute http(s) URL of the site root

        Returns:
            MirrorResult with counts for the run

        Raises:
            TransportError: If root_url is not a valid http(s) URL
            PersistenceError: If the mirror directory cannot be created
        """
        validate_url(root_url)
        result = self._init_run(root_url)

        try:
            result.mirror_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(
                f"Failed to create mirror directory: {e}",
                path=str(result.mirror_root),
            ) from e

        logger.info(f"Starting to mirror '{root_url}' into directory '{result.mirror_root}'")
        result.status = CrawlStatus.RUNNING
        result.started_at = datetime.now(timezone.utc)
        started = time.monotonic()

        try:
            self._schedule(CrawlTask(url=root_url, base_url=root_url, depth=0))
            await self._join()
        finally:
            result.completed_at = datetime.now(timezone.utc)
            result.duration_seconds = time.monotonic() - started
            result.visited = len(self._visited)
            result.status = (
                CrawlStatus.CANCELLED if self.token.cancelled else CrawlStatus.COMPLETED
            )

        logger.info(
            f"Mirror finished: {result.visited} visited, {result.saved} saved, "
            f"{result.failed} failed, {result.duration_seconds:.1f}s"
        )
        return result

    def _schedule(self, task: CrawlTask) -> None:
        """Run the terminal checks for task, then start a worker for it."""
        if self.token.cancelled:
            return

        if task.depth > self.settings.max_depth:
            logger.info(f"Skipping {task.url}: Max depth ({self.settings.max_depth}) reached.")
            self._result.skipped_depth += 1
            return

        if not self._visited.claim(task.url):
            return

        worker = asyncio.create_task(self._visit(task), name=f"mirror:{task.url}")
        self._tasks.add(worker)
        worker.add_done_callback(self._tasks.discard)

    async def _join(self) -> None:
        """Wait until no worker is outstanding, including ones spawned meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _visit(self, task: CrawlTask) -> None:
        """Fetch a claimed task under the concurrency budget."""
        try:
            async with self._semaphore:
                if self.token.cancelled:
                    return
                await self._process(task)
        except Exception as e:
            # No worker may finish with an unrecorded exception
            logger.exception(f"Unexpected error mirroring {task.url}")
            self._record_failure(task, e)

    async def _process(self, task: CrawlTask) -> None:
        """Fetch task.url, expand it if it is HTML, and persist it."""
        log = get_logger_with_context(__name__, depth=task.depth)
        log.info(f"Mirroring: {task.url}")
        path = local_path(task.url, self._result.mirror_root)

        try:
            self._result.fetched += 1
            async with self.fetcher.open(task.url) as response:
                if response.is_html:
                    await self._process_html(task, response, path)
                else:
                    await self._save_stream(response, path)
            self._result.saved += 1

        except HTTPStatusError as e:
            if e.is_not_found:
                log.warning(f"404 Not Found: {task.url}")
            else:
                log.warning(f"HTTP {e.status_code} for {task.url}")
            self._record_failure(task, e)

        except TransportError as e:
            log.warning(f"Error accessing {task.url}: {e.message}")
            self._record_failure(task, e)

        except PersistenceError as e:
            log.error(f"Failed to save {task.url}: {e}")
            self._record_failure(task, e)

        except OperationCancelledError:
            log.debug(f"Cancelled while mirroring {task.url}")

    def _record_failure(self, task: CrawlTask, error: Exception) -> None:
        self._result.failed += 1
        self._result.errors.append({
            "url": task.url,
            "depth": task.depth,
            "error": str(error),
            "type": type(error).__name__,
        })

    async def _read_body(self, response: FetchResponse) -> bytes:
        """Read a whole body through the rate limiter."""
        limiter = RateLimiter(
            response.iter_bytes(self.fetcher.settings.chunk_size),
            self.fetcher.settings.rate_limit_bytes,
        )
        chunks = []
        async for chunk in limiter:
            self.token.raise_if_cancelled()
            chunks.append(chunk)
        return b"".join(chunks)

    async def _process_html(
        self,
        task: CrawlTask,
        response: FetchResponse,
        path: Path,
    ) -> None:
        content = await self._read_body(response)

        try:
            links = extract_links(content, task.url)
        except ExtractionError as e:
            logger.warning(f"Error extracting links from {task.url}: {e}")
            links = []

        accepted = self._filter.filter_urls(links)
        for link in accepted:
            self.token.raise_if_cancelled()
            self._schedule(task.child(link))
        logger.debug(f"Scheduled {len(accepted)} of {len(links)} links from {task.url}")

        try:
            content = rewrite_document(content, task.url, task.base_url)
        except ExtractionError as e:
            # Keep the original bytes
            logger.warning(f"Error rewriting HTML for {task.url}: {e}")

        self._save_bytes(content, path)

    def _open_for_write(self, path: Path):
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            return open(path, "wb")
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Failed to create file: {e}", path=str(path)) from e

    def _save_bytes(self, content: bytes, path: Path) -> None:
        self.token.raise_if_cancelled()
        with self._open_for_write(path) as sink:
            progress = ProgressWriter(
                sink, total=len(content), filename=path.name, quiet=True, stream=self.stream)
            try:
                progress.write(content)
            except OSError as e:
                raise PersistenceError(f"Failed to write file: {e}", path=str(path)) from e
            progress.finish()

    async def _save_stream(self, response: FetchResponse, path: Path) -> None:
        self.token.raise_if_cancelled()
        with self._open_for_write(path) as sink:
            try:
                await self.fetcher.stream_to(
                    response, sink, path.name, quiet=True, stream=self.stream)
            except OSError as e:
                raise PersistenceError(f"Failed to write file: {e}", path=str(path)) from e
