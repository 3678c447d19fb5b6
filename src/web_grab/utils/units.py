"""
Byte-size parsing and formatting.

Rate limits are written the way wget users expect ("200k", "2M", "512")
and sizes are printed with 1024-based units.
"""

import re

from web_grab.core.exceptions import ConfigurationError

_RATE_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)([kKmM])?$")

_MULTIPLIERS = {
    "": 1,
    "k": 1024,
    "m": 1024 * 1024,
}

_UNIT_PREFIXES = "KMGTPE"


def parse_rate_limit(text: str | None) -> int:
    """
    Parse a rate limit string into bytes per second.

    Args:
        text: "200k", "2M", "1.5m" or a bare number of bytes per second.
              Empty or None disables limiting.

    Returns:
        Bytes per second; 0 means unlimited

    Raises:
        ConfigurationError: If the string is malformed
    """
    if text is None:
        return 0
    text = text.strip()
    if not text:
        return 0

    match = _RATE_PATTERN.match(text)
    if match is None:
        raise ConfigurationError(
            f"Invalid rate limit format: {text}",
            details={"expected": "<number>[k|K|m|M]"},
        )

    value = float(match.group(1))
    suffix = (match.group(2) or "").lower()
    return int(value * _MULTIPLIERS[suffix])


def format_bytes(num_bytes: int) -> str:
    """
    Format a byte count for humans.

    Examples:
        >>> format_bytes(512)
        '512 B'
        >>> format_bytes(1536)
        '1.5 KB'
        >>> format_bytes(3 * 1024 * 1024)
        '3.0 MB'
    """
    unit = 1024
    if num_bytes < unit:
        return f"{num_bytes} B"

    div, exp = unit, 0
    n = num_bytes // unit
    while n >= unit and exp < len(_UNIT_PREFIXES) - 1:
        div *= unit
        exp += 1
        n //= unit

    return f"{num_bytes / div:.1f} {_UNIT_PREFIXES[exp]}B"
