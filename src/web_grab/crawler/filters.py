"""
URL filtering for site mirroring.

Decides which discovered links the mirror follows: links are rejected by
file extension or path substring, and only links on the mirrored host
are in scope.
"""

import posixpath
from typing import Iterable
from urllib.parse import urlparse

from web_grab.utils.logging import get_logger

logger = get_logger(__name__)


def _normalize_extension(ext: str) -> str:
    return ext.strip().lstrip(".").lower()


def _path_rejection_reason(
    path: str,
    reject_extensions: Iterable[str],
    exclude_paths: Iterable[str],
) -> str | None:
    ext = posixpath.splitext(path)[1].lower()
    if ext:
        for rejected in reject_extensions:
            if ext == "." + _normalize_extension(rejected):
                return f"Rejected extension: {ext}"

    for pattern in exclude_paths:
        if pattern and pattern in path:
            return f"Excluded path: {pattern}"

    return None


def should_reject(
    url: str,
    reject_extensions: Iterable[str] = (),
    exclude_paths: Iterable[str] = (),
) -> bool:
    """
    Check whether a URL is excluded from the crawl.

    A URL is rejected when its path's extension matches an entry of
    reject_extensions (case-insensitive, exact: "png" matches ".png" but
    not ".apng"), or when its path contains an entry of exclude_paths as
    a plain substring. URLs that fail to parse are rejected.

    Examples:
        >>> should_reject("https://example.com/photo.PNG", ["png"])
        True
        >>> should_reject("https://example.com/photo.apng", ["png"])
        False
        >>> should_reject("https://example.com/private/a.html", (), ["/private"])
        True
    """
    try:
        path = urlparse(url).path
    except (ValueError, TypeError):
        return True

    return _path_rejection_reason(path, reject_extensions, exclude_paths) is not None


def parse_list_option(value: str | None) -> list[str]:
    """
    Split a comma-separated command-line option.

    Examples:
        >>> parse_list_option("png, jpg,,gif")
        ['png', 'jpg', 'gif']
        >>> parse_list_option(None)
        []
    """
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def same_host(url: str, host: str) -> bool:
    """Whether url's hostname equals host (case-insensitive)."""
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return False
    return hostname is not None and hostname == host.lower()


class URLFilter:
    """
    Filter discovered links for one mirror run.

    Combines extension/path rejection with same-domain scoping. Rules
    are fixed for the lifetime of the filter.

    Example:
        >>> url_filter = URLFilter(
        ...     host="example.com",
        ...     reject_extensions=["pdf"],
        ...     exclude_paths=["/login"],
        ... )
        >>> url_filter.is_allowed("https://example.com/page")
        True
        >>> url_filter.is_allowed("https://example.com/file.pdf")
        False
        >>> url_filter.is_allowed("https://other.com/page")
        False
    """

    def __init__(
        self,
        host: str,
        reject_extensions: Iterable[str] = (),
        exclude_paths: Iterable[str] = (),
    ) -> None:
        """
        Initialize URL filter.

        Args:
            host: Hostname of the mirrored site
            reject_extensions: Extensions to skip, with or without a dot
            exclude_paths: Path substrings to skip
        """
        self.host = host.lower()
        self.reject_extensions = tuple(
            _normalize_extension(e) for e in reject_extensions if e.strip())
        self.exclude_paths = tuple(p for p in exclude_paths if p)

    def get_rejection_reason(self, url: str) -> str | None:
        """
        Get reason why URL is not followed.

        Args:
            url: Absolute URL

        Returns:
            Rejection reason, or None if the URL is followed
        """
        try:
            parsed = urlparse(url)
            hostname = parsed.hostname
        except ValueError as e:
            return f"Unparseable URL: {e}"

        reason = _path_rejection_reason(
            parsed.path, self.reject_extensions, self.exclude_paths)
        if reason:
            return reason

        if (hostname or "") != self.host:
            return f"External domain: {hostname}"

        return None

    def is_allowed(self, url: str) -> bool:
        """
        Check if URL should be followed.

        Args:
            url: Absolute URL

        Returns:
            True if the URL is on the mirrored host and not rejected
        """
        return self.get_rejection_reason(url) is None

    def filter_urls(self, urls: Iterable[str]) -> list[str]:
        """
        Filter a list of URLs, logging why each dropped URL was dropped.

        Args:
            urls: URLs to filter

        Returns:
            List of allowed URLs, in input order
        """
        allowed = []
        for url in urls:
            reason = self.get_rejection_reason(url)
            if reason is None:
                allowed.append(url)
            else:
                logger.debug(f"Skipping {url}: {reason}")
        return allowed
