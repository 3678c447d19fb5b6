"""
HTTP fetching with httpx.

One GET per URL, no retries. Only 200 OK counts as success; every other
status becomes HTTPStatusError and every network-level failure becomes
TransportError, so callers handle exactly two failure shapes.

The body is never buffered by the fetcher itself: callers either read
it (HTML pages that need rewriting) or pipe it through
RateLimiter -> ProgressWriter -> file with stream_to().
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, BinaryIO, TextIO
from urllib.parse import urlparse

import httpx

from web_grab.config.settings import FetchSettings
from web_grab.core.cancellation import CancellationToken
from web_grab.core.exceptions import HTTPStatusError, TransportError
from web_grab.transfer.progress import ProgressWriter
from web_grab.transfer.rate_limiter import RateLimiter
from web_grab.utils.logging import get_logger

logger = get_logger(__name__)


def is_html(content_type: str | None) -> bool:
    """
    Check whether a Content-Type header names an HTML document.

    Only the media type is compared; parameters such as charset and
    letter case are ignored.

    Examples:
        >>> is_html("text/html; charset=UTF-8")
        True
        >>> is_html("TEXT/HTML")
        True
        >>> is_html("application/xhtml+xml")
        False
    """
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "text/html"


def validate_url(url: str) -> str:
    """
    Check that a URL is an absolute http(s) URL.

    Raises:
        TransportError: If the URL is malformed or uses another scheme
    """
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise TransportError(f"Invalid URL: {e}", url=url) from e

    if parsed.scheme not in ("http", "https"):
        raise TransportError(
            f"Unsupported URL scheme: {parsed.scheme or '(none)'}", url=url)
    if not parsed.hostname:
        raise TransportError("URL has no host", url=url)
    return url


@dataclass
class FetchResponse:
    """
    A successful (200 OK) response whose body has not been read yet.

    Attributes:
        url: Final URL after redirects
        status_code: Always 200 for a yielded response
        content_type: Raw Content-Type header ("" when absent)
        content_length: Declared body size, None when absent or invalid
    """

    url: str
    status_code: int
    content_type: str
    content_length: int | None
    reason: str = ""
    _response: httpx.Response | None = field(default=None, repr=False)

    @property
    def is_html(self) -> bool:
        return is_html(self.content_type)

    async def iter_bytes(self, chunk_size: int | None = None) -> AsyncIterator[bytes]:
        """
        Stream the body.

        Raises:
            TransportError: If the connection fails mid-body
        """
        try:
            async for chunk in self._response.aiter_bytes(chunk_size):
                yield chunk
        except httpx.HTTPError as e:
            raise TransportError(f"Error reading body: {e}", url=self.url) from e


def _parse_content_length(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        length = int(value)
    except ValueError:
        return None
    return length if length >= 0 else None


class Fetcher:
    """
    Issues single GET requests and streams their bodies.

    Owns an httpx.AsyncClient unless one is injected (tests pass a client
    built on httpx.MockTransport).

    Example:
        >>> async with Fetcher(settings.fetch) as fetcher:
        ...     async with fetcher.open("https://example.com/a.zip") as response:
        ...         with open("a.zip", "wb") as f:
        ...             await fetcher.stream_to(response, f, "a.zip")
    """

    def __init__(
        self,
        settings: FetchSettings | None = None,
        client: httpx.AsyncClient | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """
        Initialize fetcher.

        Args:
            settings: Fetch configuration (defaults if None)
            client: Pre-built HTTP client; the fetcher will not close it
            token: Cancellation token polled while streaming
        """
        self.settings = settings or FetchSettings()
        self.token = token or CancellationToken()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=self.settings.timeout_seconds,
            follow_redirects=self.settings.follow_redirects,
        )
        self.request_count = 0

    @property
    def headers(self) -> dict[str, str]:
        return {"User-Agent": self.settings.user_agent}

    async def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "Fetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @asynccontextmanager
    async def open(self, url: str) -> AsyncIterator[FetchResponse]:
        """
        Send one GET request and yield the response if it is 200 OK.

        Args:
            url: Absolute http(s) URL

        Yields:
            FetchResponse with an unread body

        Raises:
            TransportError: If the URL is invalid or the request fails
            HTTPStatusError: If the status is anything but 200
        """
        validate_url(url)
        self.request_count += 1
        logger.debug(f"GET {url}")

        try:
            async with self._client.stream("GET", url, headers=self.headers) as response:
                if response.status_code != 200:
                    label = "Not Found" if response.status_code == 404 else response.reason_phrase
                    raise HTTPStatusError(
                        f"HTTP {response.status_code} {label}".rstrip(),
                        url=url,
                        status_code=response.status_code,
                    )

                yield FetchResponse(
                    url=str(response.url),
                    status_code=response.status_code,
                    content_type=response.headers.get("content-type", ""),
                    content_length=_parse_content_length(
                        response.headers.get("content-length")),
                    reason=response.reason_phrase,
                    _response=response,
                )
        except (httpx.InvalidURL, httpx.HTTPError) as e:
            raise TransportError(f"Request failed: {e}", url=url) from e

    async def stream_to(
        self,
        response: FetchResponse,
        sink: BinaryIO,
        name: str,
        quiet: bool = False,
        stream: TextIO | None = None,
    ) -> int:
        """
        Pipe the response body through the rate limiter and progress
        writer into sink.

        The limiter sits in front of the progress writer, so the speed
        shown is the throttled speed.

        Args:
            response: Open response from open()
            sink: Binary file-like destination
            name: Name shown on the status line
            quiet: Terse completion line instead of a live bar
            stream: Console stream for status lines

        Returns:
            Number of bytes written

        Raises:
            TransportError: If the connection fails mid-body
            OperationCancelledError: If cancellation is requested mid-body
        """
        progress = ProgressWriter(
            sink,
            total=response.content_length,
            filename=name,
            quiet=quiet,
            stream=stream,
            interval=self.settings.progress_interval_seconds,
        )
        limiter = RateLimiter(
            response.iter_bytes(self.settings.chunk_size),
            self.settings.rate_limit_bytes,
        )

        async for chunk in limiter:
            self.token.raise_if_cancelled()
            progress.write(chunk)

        progress.finish()
        return progress.bytes_written
