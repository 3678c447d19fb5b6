"""
Progress reporting for streamed downloads.

ProgressWriter sits between the download stream and the file it is
written to. Bytes are forwarded untouched; the writer only counts them
and redraws a one-line status on the console.

Two presentation modes share the same state:
- interactive: live bar redrawn in place, final line plus newline
- quiet (batch and mirror runs): a single "completed: <name>" line
"""

import sys
import time
from dataclasses import dataclass
from typing import BinaryIO, Callable, TextIO

from web_grab.utils.units import format_bytes

BAR_WIDTH = 50

# Move to line start and erase it
_CLEAR_LINE = "\r\033[K"


@dataclass
class ProgressState:
    """
    Byte counters for one stream.

    Attributes:
        bytes_written: Bytes forwarded to the sink so far
        total_bytes: Expected size, None when the server did not say
        start_time: Clock value when the transfer started
        last_report_time: Clock value of the last status redraw
    """

    bytes_written: int = 0
    total_bytes: int | None = None
    start_time: float = 0.0
    last_report_time: float = 0.0

    @property
    def percentage(self) -> float | None:
        """Percent complete, or None when the total is unknown."""
        if not self.total_bytes:
            return None
        return min(100.0, self.bytes_written / self.total_bytes * 100)

    def speed(self, now: float) -> float:
        """Average bytes per second since the transfer started."""
        elapsed = now - self.start_time
        if elapsed <= 0:
            return 0.0
        return self.bytes_written / elapsed


def render_bar(percentage: float, width: int = BAR_WIDTH) -> str:
    """
    Draw a fixed-width bar such as "=====>    ".

    Examples:
        >>> render_bar(50.0, width=10)
        '=====>    '
        >>> render_bar(100.0, width=10)
        '=========='
    """
    filled = int(width * percentage / 100)
    bar = "=" * filled
    if filled < width:
        bar += ">" + " " * (width - filled - 1)
    return bar


def format_status(filename: str, state: ProgressState, now: float) -> str:
    """Build one status line for the current state."""
    speed_kb = state.speed(now) / 1024
    percentage = state.percentage

    if percentage is None:
        return f"{filename} {format_bytes(state.bytes_written)} {speed_kb:.2f}KB/s"

    return (
        f"{filename} {percentage:3.0f}% [{render_bar(percentage)}] "
        f"{format_bytes(state.bytes_written)}/{format_bytes(state.total_bytes)} "
        f"{speed_kb:.2f}KB/s"
    )


class ProgressWriter:
    """
    Byte sink wrapper that reports transfer progress.

    Example:
        >>> with open("file.bin", "wb") as f:
        ...     progress = ProgressWriter(f, total=1024, filename="file.bin")
        ...     progress.write(data)
        ...     progress.finish()
    """

    def __init__(
        self,
        sink: BinaryIO,
        total: int | None,
        filename: str,
        quiet: bool = False,
        stream: TextIO | None = None,
        interval: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize progress writer.

        Args:
            sink: Binary file-like object receiving the bytes
            total: Expected total size; None or <= 0 means unknown
            filename: Name shown at the start of each status line
            quiet: Print only a terse completion line
            stream: Console stream for status lines (default: stdout)
            interval: Minimum seconds between redraws
            clock: Monotonic clock, injectable for tests
        """
        self.sink = sink
        self.filename = filename
        self.quiet = quiet
        self.stream = stream if stream is not None else sys.stdout
        self.interval = interval
        self._clock = clock

        now = clock()
        self.state = ProgressState(
            total_bytes=total if total and total > 0 else None,
            start_time=now,
            last_report_time=now,
        )
        self._finished = False

    @property
    def bytes_written(self) -> int:
        return self.state.bytes_written

    def write(self, data: bytes) -> int:
        """Forward data to the sink and update counters."""
        written = self.sink.write(data)
        if written is None:
            written = len(data)
        self.state.bytes_written += written

        now = self._clock()
        if now - self.state.last_report_time >= self.interval:
            self.state.last_report_time = now
            self._show_progress(now)

        return written

    def _show_progress(self, now: float) -> None:
        if self.quiet:
            return
        self.stream.write(_CLEAR_LINE + format_status(self.filename, self.state, now))
        self.stream.flush()

    def finish(self) -> None:
        """Emit the final status. Later calls are no-ops."""
        if self._finished:
            return
        self._finished = True

        if self.quiet:
            self.stream.write(f"completed: {self.filename}\n")
        else:
            self._show_progress(self._clock())
            self.stream.write("\n")
        self.stream.flush()
