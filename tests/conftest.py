"""
Shared pytest fixtures for web-grab tests.

Provides reusable fixtures for:
- Configuration and settings
- A fake website served through httpx.MockTransport
- Fetchers wired to the fake site
- Temporary resources
"""

import io
import tempfile
from collections import Counter
from pathlib import Path
from typing import Generator

import httpx
import pytest
import pytest_asyncio

from web_grab.config import Settings
from web_grab.config.loader import reset_settings
from web_grab.core.cancellation import CancellationToken
from web_grab.transfer import Fetcher
from web_grab.utils.logging import reset_logging


class FakeSite:
    """
    In-memory website for httpx.MockTransport.

    Pages are registered by absolute URL (without query or fragment).
    Every request is recorded so tests can count fetches.

    Example:
        >>> site = FakeSite()
        >>> site.add("https://example.com/", "<a href='/a'>a</a>")
        >>> client = site.client()
    """

    def __init__(self) -> None:
        self.pages: dict[str, tuple[int, str, bytes]] = {}
        self.requests: list[str] = []
        self.user_agents: list[str] = []

    def add(
        self,
        url: str,
        body: str | bytes,
        content_type: str = "text/html; charset=utf-8",
        status: int = 200,
    ) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.pages[url] = (status, content_type, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        self.requests.append(url)
        self.user_agents.append(request.headers.get("user-agent", ""))

        if url not in self.pages:
            return httpx.Response(404, content=b"not found")

        status, content_type, body = self.pages[url]
        return httpx.Response(status, content=body, headers={"Content-Type": content_type})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def fetch_counts(self) -> Counter:
        return Counter(self.requests)


@pytest.fixture(autouse=True)
def reset_global_state():
    """
    Reset cached settings and logging before and after each test.

    This ensures tests are isolated and don't share global state.
    """
    reset_settings()
    reset_logging()
    yield
    reset_settings()
    reset_logging()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that's cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """
    Provide test settings writing into a temporary directory.

    Progress redraws are disabled so console output stays small.
    """
    return Settings(
        fetch={"output_dir": str(temp_dir), "progress_interval_seconds": 10.0},
        mirror={"max_depth": 3, "max_concurrent": 5},
    )


@pytest.fixture
def site() -> FakeSite:
    """Provide an empty fake website."""
    return FakeSite()


@pytest.fixture
def token() -> CancellationToken:
    """Provide a fresh cancellation token."""
    return CancellationToken()


@pytest.fixture
def console_stream() -> io.StringIO:
    """Capture progress and status lines."""
    return io.StringIO()


@pytest_asyncio.fixture
async def fetcher(test_settings: Settings, site: FakeSite, token: CancellationToken):
    """Provide a Fetcher whose requests are served by the fake site."""
    client = site.client()
    fetcher = Fetcher(test_settings.fetch, client=client, token=token)
    yield fetcher
    await client.aclose()


@pytest.fixture
def sample_html() -> str:
    """Provide sample HTML for extraction tests."""
    return """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Test Page Title</title>
<link rel="stylesheet" href="/css/site.css">
<script src="js/app.js"></script>
</head>
<body>
<nav>
<a href="/">Home</a>
<a href="/about">About Us</a>
<a href="https://other.org/page">Elsewhere</a>
<a href="mailto:contact@example.com">Mail</a>
<a href="#top">Top</a>
</nav>
<img src="/img/logo.png" alt="logo">
<img src="data:image/png;base64,iVBORw0KGgo=" alt="inline">
<form action="/search"><input name="q"></form>
</body>
</html>
"""
