"""
Pydantic settings models for web-grab.

All configuration is defined here with defaults matching the command line
(depth 3, five concurrent fetches, no rate limit).
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from web_grab import __version__
from web_grab.core.exceptions import ConfigurationError
from web_grab.utils.units import parse_rate_limit

DEFAULT_USER_AGENT = f"web-grab/{__version__}"


def _validate_rate_limit(v: str | None) -> str | None:
    """Reject malformed rate limit strings at load time."""
    if v is None:
        return None
    try:
        parse_rate_limit(v)
    except ConfigurationError as e:
        # pydantic turns ValueError into a ValidationError
        raise ValueError(e.message) from e
    return v


class FetchSettings(BaseModel):
    """HTTP fetch and streaming configuration."""

    model_config = {"validate_assignment": True}

    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header sent with every request",
    )
    timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=600.0,
        description="Connect/read timeout for a single request",
    )
    follow_redirects: bool = Field(
        default=True,
        description="Whether to follow HTTP redirects before checking the status",
    )
    chunk_size: int = Field(
        default=32 * 1024,
        ge=512,
        le=4 * 1024 * 1024,
        description="Size of body chunks read from the network",
    )
    rate_limit: str | None = Field(
        default=None,
        description="Throughput ceiling such as '200k' or '2M'. None means unlimited.",
    )
    output_dir: Path = Field(
        default=Path("."),
        description="Directory downloaded files are written to",
    )
    progress_interval_seconds: float = Field(
        default=0.1,
        ge=0.0,
        le=10.0,
        description="Minimum time between progress line redraws",
    )

    @field_validator("rate_limit")
    @classmethod
    def check_rate_limit(cls, v: str | None) -> str | None:
        """Validate the rate limit format."""
        return _validate_rate_limit(v)

    @field_validator("output_dir", mode="before")
    @classmethod
    def convert_output_dir(cls, v: str | Path) -> Path:
        """Convert string paths to Path objects."""
        return Path(v) if isinstance(v, str) else v

    @property
    def rate_limit_bytes(self) -> int:
        """Rate limit in bytes per second; 0 means unlimited."""
        return parse_rate_limit(self.rate_limit)


class BatchSettings(BaseModel):
    """Concurrent batch download configuration."""

    model_config = {"validate_assignment": True}

    max_concurrent: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Maximum number of downloads in flight at once",
    )


class MirrorSettings(BaseModel):
    """Recursive site mirror configuration."""

    model_config = {"validate_assignment": True}

    max_depth: int = Field(
        default=3,
        ge=0,
        le=50,
        description="Maximum link depth from the root URL",
    )
    max_concurrent: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Maximum number of fetches in flight at once",
    )
    reject_extensions: list[str] = Field(
        default_factory=list,
        description="File extensions that are never fetched (e.g. 'png')",
    )
    exclude_paths: list[str] = Field(
        default_factory=list,
        description="Path substrings that are never fetched (e.g. '/private')",
    )

    @field_validator("reject_extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        """Strip whitespace and a leading dot from each extension."""
        return [ext.strip().lstrip(".") for ext in v if ext.strip()]


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum logging level",
    )
    format: str = Field(
        default="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        description="Log message format string",
    )
    date_format: str = Field(
        default="%Y-%m-%d %H:%M:%S",
        description="Date format for log timestamps",
    )
    file_path: Path | None = Field(
        default=None,
        description="Path to log file. None means console only.",
    )
    max_file_size_mb: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum log file size before rotation",
    )
    backup_count: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Number of backup log files to keep",
    )
    log_to_console: bool = Field(
        default=True,
        description="Whether to output logs to console",
    )

    @field_validator("file_path", mode="before")
    @classmethod
    def convert_file_path(cls, v: str | Path | None) -> Path | None:
        """Convert string paths to Path objects."""
        if v is None:
            return None
        return Path(v) if isinstance(v, str) else v


class Settings(BaseModel):
    """
    Root configuration model containing all subsystem settings.

    Settings are loaded from YAML with environment variable overrides;
    command-line options are applied on top by the CLI.
    """

    fetch: FetchSettings = Field(
        default_factory=FetchSettings,
        description="HTTP fetch settings",
    )
    batch: BatchSettings = Field(
        default_factory=BatchSettings,
        description="Batch download settings",
    )
    mirror: MirrorSettings = Field(
        default_factory=MirrorSettings,
        description="Site mirror settings",
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )

    model_config = {
        "extra": "forbid",
        "validate_default": True,
    }
