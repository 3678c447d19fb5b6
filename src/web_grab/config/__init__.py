"""
Configuration module for web-grab.

Provides Pydantic-based settings management with YAML file support
and environment variable overrides.
"""

from web_grab.config.settings import (
    Settings,
    FetchSettings,
    BatchSettings,
    MirrorSettings,
    LoggingSettings,
)
from web_grab.config.loader import load_config, get_default_config_path, reset_settings

__all__ = [
    "Settings",
    "FetchSettings",
    "BatchSettings",
    "MirrorSettings",
    "LoggingSettings",
    "load_config",
    "get_default_config_path",
    "reset_settings",
]
