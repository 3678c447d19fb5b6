"""
web-grab - HTTP downloads and recursive site mirroring.

This package downloads files with rate limiting and progress output, and
mirrors whole sites into a local directory tree whose links point at
each other.
"""

__version__ = "0.1.0"
__author__ = "web-grab contributors"

from web_grab.config import Settings, load_config
from web_grab.utils.logging import setup_logging, get_logger
from web_grab.core.exceptions import WebGrabError
from web_grab.core.cancellation import CancellationToken
from web_grab.transfer import Fetcher, Downloader
from web_grab.crawler import MirrorCrawler

__all__ = [
    "Settings",
    "load_config",
    "setup_logging",
    "get_logger",
    "WebGrabError",
    "CancellationToken",
    "Fetcher",
    "Downloader",
    "MirrorCrawler",
]
