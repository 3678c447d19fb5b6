"""
Cooperative cancellation for downloads and crawls.

A CancellationToken is created once per run and passed explicitly to every
component that does network or file I/O. Nothing is interrupted
preemptively: tasks poll the token before starting a fetch, before
scheduling children, and between streamed chunks.
"""

import threading

from web_grab.core.exceptions import OperationCancelledError
from web_grab.utils.logging import get_logger

logger = get_logger(__name__)


class CancellationToken:
    """
    Thread-safe, set-once cancellation flag.

    Safe to trigger from a signal handler or another thread.

    Example:
        >>> token = CancellationToken()
        >>> token.cancel()
        >>> token.cancelled
        True
        >>> token.raise_if_cancelled()
        Traceback (most recent call last):
        ...
        web_grab.core.exceptions.OperationCancelledError: Operation cancelled
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        with self._lock:
            return self._cancelled

    def cancel(self) -> None:
        """Request cancellation. Later calls are no-ops."""
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
        logger.info("Cancellation requested")

    def raise_if_cancelled(self) -> None:
        """
        Poll point.

        Raises:
            OperationCancelledError: If cancellation was requested
        """
        if self.cancelled:
            raise OperationCancelledError()
