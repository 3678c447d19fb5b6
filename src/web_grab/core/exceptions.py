"""
Custom exceptions for web-grab.

Provides a hierarchy of exceptions that mirrors how failures are handled:
configuration errors stop the program before any network activity, while
fetch and persistence errors abandon a single download or crawl task and
leave the rest of the run alone. All exceptions inherit from WebGrabError.

Exception Hierarchy:
    WebGrabError (base)
    ├── ConfigurationError
    ├── FetchError
    │   ├── TransportError
    │   └── HTTPStatusError
    ├── PersistenceError
    ├── ExtractionError
    └── OperationCancelledError
"""

from typing import Any


class WebGrabError(Exception):
    """
    Base exception for all web-grab errors.

    All custom exceptions inherit from this class, allowing for
    catch-all handling when needed.

    Attributes:
        message: Human-readable error description
        details: Optional dictionary with additional context
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(
                f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(WebGrabError):
    """
    Error in configuration loading or validation.

    Raised when:
    - A rate limit string is malformed
    - A required URL or input file is missing
    - Setting values fail validation

    Always fatal, and always raised before any request is sent.
    """

    pass


# =============================================================================
# Fetch Errors
# =============================================================================


class FetchError(WebGrabError):
    """
    Base error for a single failed fetch.

    Non-fatal to a batch or mirror run: only the task that hit it is
    abandoned. Never retried.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if url:
            details["url"] = url
        super().__init__(message, details)
        self.url = url


class TransportError(FetchError):
    """
    The request never produced a response.

    Raised when:
    - The URL is malformed or uses an unsupported scheme
    - DNS resolution or the TCP/TLS connection fails
    - The connection times out or drops mid-body
    """

    pass


class HTTPStatusError(FetchError):
    """
    The server answered with anything other than 200 OK.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, url=url, details=details)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        """True for a 404 response."""
        return self.status_code == 404


# =============================================================================
# Persistence Errors
# =============================================================================


class PersistenceError(WebGrabError):
    """
    Error writing downloaded content to disk.

    Raised when:
    - A parent directory cannot be created
    - The output file cannot be opened or written
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if path:
            details["path"] = path
        super().__init__(message, details)
        self.path = path


# =============================================================================
# Extraction Errors
# =============================================================================


class ExtractionError(WebGrabError):
    """
    Error parsing or re-rendering an HTML document.

    The mirror falls back to saving the original bytes when a rewrite
    fails.
    """

    pass


# =============================================================================
# Cancellation
# =============================================================================


class OperationCancelledError(WebGrabError):
    """
    Raised at a poll point once cancellation has been requested.

    Files already written stay on disk.
    """

    def __init__(self, message: str = "Operation cancelled") -> None:
        super().__init__(message)
