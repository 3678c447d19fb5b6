"""
Utilities module for web-grab.

Provides logging setup and byte-size helpers.
"""

from web_grab.utils.logging import (
    setup_logging,
    get_logger,
    get_logger_with_context,
    reset_logging,
)
from web_grab.utils.units import parse_rate_limit, format_bytes

__all__ = [
    "setup_logging",
    "get_logger",
    "get_logger_with_context",
    "reset_logging",
    "parse_rate_limit",
    "format_bytes",
]
