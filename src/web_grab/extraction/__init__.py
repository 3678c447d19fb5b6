"""
Extraction module for web-grab.

Finds the links of an HTML page and rewrites them to point into the
local mirror.
"""

from web_grab.extraction.links import (
    LINK_ATTRIBUTES,
    extract_links,
    rewrite_document,
    local_link,
)

__all__ = [
    "LINK_ATTRIBUTES",
    "extract_links",
    "rewrite_document",
    "local_link",
]
