"""
Core module for web-grab.

Contains the exception hierarchy, the cancellation token, and the
URL-to-local-path mapping shared by every download and crawl.
"""

from web_grab.core.exceptions import (
    WebGrabError,
    ConfigurationError,
    FetchError,
    TransportError,
    HTTPStatusError,
    PersistenceError,
    ExtractionError,
    OperationCancelledError,
)
from web_grab.core.cancellation import CancellationToken
from web_grab.core.paths import (
    local_path,
    relative_local_path,
    mirror_dir_name,
    download_filename,
)

__all__ = [
    # Base
    "WebGrabError",
    "ConfigurationError",
    # Fetch
    "FetchError",
    "TransportError",
    "HTTPStatusError",
    # Persistence / extraction
    "PersistenceError",
    "ExtractionError",
    # Cancellation
    "OperationCancelledError",
    "CancellationToken",
    # Path mapping
    "local_path",
    "relative_local_path",
    "mirror_dir_name",
    "download_filename",
]
