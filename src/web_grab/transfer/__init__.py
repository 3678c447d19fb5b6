"""
Transfer module for web-grab.

Provides the streaming download pipeline:
- Byte-rate limiting
- Progress reporting
- HTTP fetching
- Single, background and batch downloads
"""

from web_grab.transfer.rate_limiter import RateLimiter
from web_grab.transfer.progress import ProgressWriter, ProgressState, format_status
from web_grab.transfer.fetcher import Fetcher, FetchResponse, is_html, validate_url
from web_grab.transfer.downloader import (
    Downloader,
    DownloadResult,
    BatchResult,
    read_url_list,
)

__all__ = [
    # Rate limiting
    "RateLimiter",
    # Progress
    "ProgressWriter",
    "ProgressState",
    "format_status",
    # Fetching
    "Fetcher",
    "FetchResponse",
    "is_html",
    "validate_url",
    # Downloads
    "Downloader",
    "DownloadResult",
    "BatchResult",
    "read_url_list",
]
