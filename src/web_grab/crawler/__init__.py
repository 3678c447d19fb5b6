"""
Crawler module for web-grab.

Provides the site mirroring engine:
- URL filtering and same-host scoping
- Crawl tasks and the visited-URL ledger
- Mirror orchestration
"""

from web_grab.crawler.filters import (
    URLFilter,
    should_reject,
    parse_list_option,
    same_host,
)
from web_grab.crawler.visited import (
    CrawlTask,
    VisitedSet,
)
from web_grab.crawler.orchestrator import (
    MirrorCrawler,
    MirrorResult,
    CrawlStatus,
)

__all__ = [
    # Filters
    "URLFilter",
    "should_reject",
    "parse_list_option",
    "same_host",
    # Tasks
    "CrawlTask",
    "VisitedSet",
    # Orchestrator
    "MirrorCrawler",
    "MirrorResult",
    "CrawlStatus",
]
