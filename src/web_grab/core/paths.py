"""
Mapping of remote URLs to local mirror paths.

Every function here is pure: the same URL always maps to the same path,
which is what lets the link rewriter compute relative links to files
that may not have been fetched yet.

Layout: <mirror_dir>/<hostname>/<url path>, with "index.html" appended
to directory-like paths.
"""

import posixpath
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse

INDEX_FILE = "index.html"
FALLBACK_DIR_NAME = "mirrored_site"


def _has_extension(path: str) -> bool:
    return posixpath.splitext(posixpath.basename(path))[1] != ""


def relative_local_path(url: str) -> PurePosixPath:
    """
    Local path of url relative to the mirror directory.

    Examples:
        >>> relative_local_path("https://example.com/")
        PurePosixPath('example.com/index.html')
        >>> relative_local_path("https://example.com/docs/guide")
        PurePosixPath('example.com/docs/guide/index.html')
        >>> relative_local_path("https://example.com/img/logo.png?v=2")
        PurePosixPath('example.com/img/logo.png')
    """
    parsed = urlparse(url)
    path = unquote(parsed.path)

    # Normalize dot segments; leading ".." cannot climb above the host dir
    normalized = posixpath.normpath("/" + path.lstrip("/"))
    parts = [p for p in normalized.split("/") if p not in ("", ".", "..")]
    relative = "/".join(parts)

    if not relative or path.endswith("/") or not _has_extension(relative):
        relative = posixpath.join(relative, INDEX_FILE) if relative else INDEX_FILE

    return PurePosixPath(parsed.hostname or "") / relative


def local_path(url: str, mirror_dir: Path) -> Path:
    """
    Local file that holds url's content inside mirror_dir.

    Args:
        url: Absolute URL
        mirror_dir: Mirror root directory

    Returns:
        mirror_dir / hostname / path
    """
    return Path(mirror_dir).joinpath(*relative_local_path(url).parts)


def mirror_dir_name(url: str) -> str:
    """Directory name for a mirror of url: its hostname, or a fallback."""
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        hostname = None
    return hostname or FALLBACK_DIR_NAME


def download_filename(url: str) -> str:
    """
    Default file name for a single download of url.

    Examples:
        >>> download_filename("https://example.com/files/report.pdf")
        'report.pdf'
        >>> download_filename("https://example.com/")
        'index.html'
    """
    name = posixpath.basename(unquote(urlparse(url).path))
    return name or INDEX_FILE
