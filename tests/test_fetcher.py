"""
Tests for the HTTP fetcher.

Requests are served by the FakeSite fixture through httpx.MockTransport.
"""

import io

import httpx
import pytest

from web_grab.core.exceptions import (
    HTTPStatusError,
    OperationCancelledError,
    TransportError,
)
from web_grab.transfer import Fetcher, is_html, validate_url


async def read_body(fetcher: Fetcher, url: str) -> bytes:
    """Open url and read its whole body."""
    async with fetcher.open(url) as response:
        return b"".join([chunk async for chunk in response.iter_bytes()])


class TestIsHtml:
    """Tests for content-type detection."""

    @pytest.mark.parametrize(
        "content_type",
        ["text/html", "text/html; charset=utf-8", "TEXT/HTML", " text/html ;charset=latin-1"],
    )
    def test_html_types(self, content_type: str):
        assert is_html(content_type)

    @pytest.mark.parametrize(
        "content_type",
        [None, "", "application/xhtml+xml", "text/plain", "image/png", "text/htmlx"],
    )
    def test_non_html_types(self, content_type):
        assert not is_html(content_type)


class TestValidateUrl:
    """Tests for URL validation."""

    def test_accepts_http_and_https(self):
        assert validate_url("http://example.com/") == "http://example.com/"
        assert validate_url("https://example.com/a") == "https://example.com/a"

    @pytest.mark.parametrize("url", ["example.com/page", "ftp://example.com/", "https://", "http://[::1"])
    def test_rejects_invalid(self, url: str):
        with pytest.raises(TransportError):
            validate_url(url)


class TestFetcher:
    """Tests for Fetcher."""

    @pytest.mark.asyncio
    async def test_fetch_success(self, fetcher: Fetcher, site):
        site.add("https://example.com/data.txt", "payload", content_type="text/plain")

        body = await read_body(fetcher, "https://example.com/data.txt")

        assert body == b"payload"
        assert fetcher.request_count == 1

    @pytest.mark.asyncio
    async def test_sends_user_agent(self, fetcher: Fetcher, site):
        site.add("https://example.com/", "<p>hi</p>")

        await read_body(fetcher, "https://example.com/")

        assert site.user_agents == [fetcher.settings.user_agent]
        assert site.user_agents[0].startswith("web-grab/")

    @pytest.mark.asyncio
    async def test_response_metadata(self, fetcher: Fetcher, site):
        site.add("https://example.com/page", "<p>hello</p>")

        async with fetcher.open("https://example.com/page") as response:
            assert response.status_code == 200
            assert response.is_html
            assert response.content_length == len(b"<p>hello</p>")

    @pytest.mark.asyncio
    async def test_not_found(self, fetcher: Fetcher):
        with pytest.raises(HTTPStatusError) as exc_info:
            await read_body(fetcher, "https://example.com/missing")

        assert exc_info.value.status_code == 404
        assert exc_info.value.is_not_found
        assert "Not Found" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_non_200_is_an_error(self, fetcher: Fetcher, site):
        """Only 200 counts as success, even for other 2xx codes."""
        site.add("https://example.com/partial", "x", status=206)

        with pytest.raises(HTTPStatusError) as exc_info:
            await read_body(fetcher, "https://example.com/partial")

        assert exc_info.value.status_code == 206
        assert not exc_info.value.is_not_found

    @pytest.mark.asyncio
    async def test_no_retry(self, fetcher: Fetcher, site):
        """A failed request is attempted exactly once."""
        site.add("https://example.com/err", "boom", status=500)

        with pytest.raises(HTTPStatusError):
            await read_body(fetcher, "https://example.com/err")

        assert site.requests == ["https://example.com/err"]

    @pytest.mark.asyncio
    async def test_connection_error_is_transport_error(self, test_settings):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(refuse))
        async with Fetcher(test_settings.fetch, client=client) as fetcher:
            with pytest.raises(TransportError) as exc_info:
                await read_body(fetcher, "https://unreachable.test/")
        await client.aclose()

        assert exc_info.value.url == "https://unreachable.test/"

    @pytest.mark.asyncio
    async def test_invalid_url_sends_nothing(self, fetcher: Fetcher, site):
        with pytest.raises(TransportError):
            await read_body(fetcher, "not a url")

        assert site.requests == []

    @pytest.mark.asyncio
    async def test_stream_to_writes_body(self, fetcher: Fetcher, site, console_stream):
        body = bytes(range(256)) * 64
        site.add("https://example.com/blob.bin", body, content_type="application/octet-stream")

        sink = io.BytesIO()
        async with fetcher.open("https://example.com/blob.bin") as response:
            written = await fetcher.stream_to(
                response, sink, "blob.bin", quiet=True, stream=console_stream)

        assert written == len(body)
        assert sink.getvalue() == body
        assert console_stream.getvalue() == "completed: blob.bin\n"

    @pytest.mark.asyncio
    async def test_stream_to_stops_on_cancellation(self, fetcher: Fetcher, site, token, console_stream):
        site.add("https://example.com/blob.bin", b"x" * 1024, content_type="application/octet-stream")

        async with fetcher.open("https://example.com/blob.bin") as response:
            token.cancel()
            with pytest.raises(OperationCancelledError):
                await fetcher.stream_to(response, io.BytesIO(), "blob.bin", stream=console_stream)
