"""
Crawl tasks and the visited-URL ledger.

The VisitedSet is the single serialization point of a mirror run: the
membership check and the insert happen under one lock, so a URL
discovered by two pages at once is claimed by exactly one of them.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone

from web_grab.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CrawlTask:
    """
    One URL to mirror.

    Created when a link is accepted and consumed exactly once by a worker.

    Attributes:
        url: Absolute URL to fetch
        base_url: Root URL of the mirror run
        depth: Link distance from the root (root = 0)
        parent_url: Page the link was found on, None for the root
    """

    url: str
    base_url: str
    depth: int = 0
    parent_url: str | None = None
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
        compare=False,
    )

    def child(self, url: str) -> "CrawlTask":
        """Task for a link found on this task's page."""
        return CrawlTask(
            url=url,
            base_url=self.base_url,
            depth=self.depth + 1,
            parent_url=self.url,
        )


class VisitedSet:
    """
    Thread-safe set of URLs already claimed for fetching.

    A URL is claimed before its fetch starts, so a failed fetch is never
    retried within the same run.

    Example:
        >>> visited = VisitedSet()
        >>> visited.claim("https://example.com/")
        True
        >>> visited.claim("https://example.com/")
        False
        >>> len(visited)
        1
    """

    def __init__(self) -> None:
        self._urls: dict[str, bool] = {}
        self._lock = threading.Lock()

    def claim(self, url: str) -> bool:
        """
        Atomically check and insert url.

        Args:
            url: Absolute URL

        Returns:
            True if this caller claimed the URL, False if it was
            already claimed
        """
        with self._lock:
            if url in self._urls:
                return False
            self._urls[url] = True
            return True

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._urls

    def __len__(self) -> int:
        with self._lock:
            return len(self._urls)
