"""
Hyperlink extraction and rewriting for mirrored HTML pages.

Both operations look at the same attributes:
    a, link  -> href
    img, script -> src
    form -> action

extract_links() lists the absolute http(s) targets of a page.
rewrite_document() points every same-host target at the local file the
mirror stores it in, as a path relative to the page's own local file,
so the mirror can be browsed straight from disk.
"""

import posixpath
from urllib.parse import quote, urldefrag, urljoin, urlparse

from bs4 import BeautifulSoup

from web_grab.core.exceptions import ExtractionError
from web_grab.core.paths import relative_local_path
from web_grab.utils.logging import get_logger

logger = get_logger(__name__)

# Tag name -> attribute holding a navigable or resource URL
LINK_ATTRIBUTES = {
    "a": "href",
    "link": "href",
    "img": "src",
    "script": "src",
    "form": "action",
}

_FOLLOWED_SCHEMES = ("http", "https")


def _parse(html: bytes | str) -> BeautifulSoup:
    try:
        return BeautifulSoup(html, "html.parser")
    except Exception as e:
        raise ExtractionError(f"Failed to parse HTML: {e}") from e


def _iter_link_attributes(soup: BeautifulSoup):
    """Yield (tag, attribute name, value) for every link-bearing attribute."""
    for tag in soup.find_all(list(LINK_ATTRIBUTES)):
        attr = LINK_ATTRIBUTES[tag.name]
        value = tag.get(attr)
        if isinstance(value, str) and value.strip():
            yield tag, attr, value.strip()


def _resolve(value: str, base_url: str) -> str | None:
    """Absolute form of value, or None if it cannot be parsed."""
    try:
        return urljoin(base_url, value)
    except ValueError:
        logger.debug(f"Malformed link skipped: {value}")
        return None


def extract_links(html: bytes | str, base_url: str) -> list[str]:
    """
    List the absolute http(s) URLs a page links to.

    Relative values are resolved against base_url (the page's own URL).
    Fragments are dropped since they name the same resource; data:,
    mailto:, javascript: and other schemes are skipped. Order follows
    the document, duplicates removed.

    Args:
        html: Document bytes or text
        base_url: URL the document was fetched from

    Returns:
        Unique absolute URLs

    Raises:
        ExtractionError: If the document cannot be parsed
    """
    soup = _parse(html)
    links: dict[str, None] = {}

    for _, _, value in _iter_link_attributes(soup):
        resolved = _resolve(value, base_url)
        if resolved is None:
            continue
        resolved, _ = urldefrag(resolved)
        if urlparse(resolved).scheme in _FOLLOWED_SCHEMES:
            links.setdefault(resolved, None)

    return list(links)


def local_link(target_url: str, current_url: str) -> str:
    """
    Link from current_url's local file to target_url's local file.

    Examples:
        >>> local_link("https://example.com/about", "https://example.com/")
        'about/index.html'
        >>> local_link("https://example.com/", "https://example.com/docs/a.html")
        '../index.html'
    """
    target = relative_local_path(target_url).as_posix()
    current = relative_local_path(current_url).as_posix()
    try:
        return posixpath.relpath(target, posixpath.dirname(current) or ".")
    except ValueError:
        return "/" + target


def _local_file_url(url: str) -> str:
    """
    URL of the local file that holds url, on url's own host.

    Relative links written into a page resolve against this URL rather
    than the page's remote URL; the two differ for extension-less paths
    such as /docs/guide (stored as docs/guide/index.html).
    """
    parsed = urlparse(url)
    local = relative_local_path(url)
    path = "/" + "/".join(local.parts[1:])
    return f"{parsed.scheme}://{parsed.netloc}{quote(path)}"


def _is_local_link(value: str, current_url: str, local_base: str) -> bool:
    """Whether value is already the local link rewrite_document would write."""
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    if parsed.scheme or parsed.netloc:
        return False

    resolved = _resolve(value, local_base)
    if resolved is None:
        return False

    target, fragment = urldefrag(resolved)
    expected = local_link(target, current_url)
    if fragment:
        expected = f"{expected}#{fragment}"
    return expected == value


def rewrite_document(html: bytes | str, current_url: str, base_url: str) -> bytes:
    """
    Rewrite same-host links to point into the local mirror.

    Each link attribute is resolved against current_url. If the result is
    on base_url's host, the attribute becomes the relative path from
    current_url's local file to the target's local file (keeping any
    fragment). Links to other hosts and non-http(s) values are left
    alone, and so are values that already are the local link to their
    target, so running the rewrite again on its own output changes
    nothing.

    Args:
        html: Document bytes or text
        current_url: URL the document was fetched from
        base_url: Root URL of the mirror

    Returns:
        Rewritten document, UTF-8 encoded

    Raises:
        ExtractionError: If the document cannot be parsed or rendered
    """
    soup = _parse(html)
    mirror_host = urlparse(base_url).hostname
    local_base = _local_file_url(current_url)
    rewritten = 0

    for tag, attr, value in _iter_link_attributes(soup):
        if _is_local_link(value, current_url, local_base):
            continue

        resolved = _resolve(value, current_url)
        if resolved is None:
            continue

        parsed = urlparse(resolved)
        if parsed.scheme not in _FOLLOWED_SCHEMES or parsed.hostname != mirror_host:
            continue

        new_value = local_link(resolved, current_url)
        if parsed.fragment:
            new_value = f"{new_value}#{parsed.fragment}"

        if new_value != tag[attr]:
            tag[attr] = new_value
            rewritten += 1

    logger.debug(f"Rewrote {rewritten} links in {current_url}")

    try:
        return soup.encode("utf-8")
    except Exception as e:
        raise ExtractionError(f"Failed to render HTML: {e}") from e
