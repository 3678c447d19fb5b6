"""
Configuration loader with YAML file support and environment variable overrides.

Supports loading from:
1. Default values (defined in settings.py)
2. YAML configuration file
3. Environment variables (highest priority)

Environment variables use the pattern: WEB_GRAB__{SECTION}__{KEY}
Example: WEB_GRAB__MIRROR__MAX_DEPTH=5

List settings accept a comma-separated value:
WEB_GRAB__MIRROR__REJECT_EXTENSIONS=png,jpg

Every failure surfaces as ConfigurationError so the CLI can stop before
any request is sent.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from web_grab.config.settings import Settings
from web_grab.core.exceptions import ConfigurationError

# Settings whose environment value is split on commas
_LIST_KEYS = {"reject_extensions", "exclude_paths"}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries, with override taking precedence.

    Args:
        base: Base dictionary to merge into
        override: Dictionary with values to override

    Returns:
        Merged dictionary with override values taking precedence
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def _parse_env_value(value: str) -> Any:
    """
    Parse environment variable string into appropriate Python type.

    Numbers are tried before booleans so that "0" and "1" stay integers.

    Args:
        value: String value from environment variable

    Returns:
        Parsed value (int, float, bool, None, or string)
    """
    # Handle None
    if value.lower() in ("none", "null", ""):
        return None

    # Try integer
    try:
        return int(value)
    except ValueError:
        pass

    # Try float
    try:
        return float(value)
    except ValueError:
        pass

    # Handle booleans
    if value.lower() in ("true", "yes", "on"):
        return True
    if value.lower() in ("false", "no", "off"):
        return False

    # Return as string
    return value


def _load_env_overrides(prefix: str = "WEB_GRAB") -> dict[str, Any]:
    """
    Load configuration overrides from environment variables.

    Environment variables should follow the pattern:
    {PREFIX}__{SECTION}__{KEY}

    For example:
    - WEB_GRAB__MIRROR__MAX_DEPTH=5
    - WEB_GRAB__FETCH__RATE_LIMIT=200k
    - WEB_GRAB__LOGGING__LEVEL=DEBUG

    Args:
        prefix: Environment variable prefix to look for

    Returns:
        Dictionary of configuration overrides
    """
    overrides: dict[str, Any] = {}
    prefix_with_sep = f"{prefix}__"

    for key, value in os.environ.items():
        if not key.startswith(prefix_with_sep):
            continue

        # Remove prefix and split into parts
        key_path = key[len(prefix_with_sep):].lower().split("__")

        if len(key_path) < 2:
            continue

        # Build nested dictionary
        current = overrides
        for part in key_path[:-1]:
            if part not in current:
                current[part] = {}
            current = current[part]

        leaf = key_path[-1]
        if leaf in _LIST_KEYS:
            current[leaf] = [item.strip() for item in value.split(",") if item.strip()]
        elif leaf == "rate_limit":
            # "200k" must not be coerced; "1024" stays a string too
            current[leaf] = value or None
        else:
            current[leaf] = _parse_env_value(value)

    return overrides


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file

    Returns:
        Dictionary of configuration values

    Raises:
        ConfigurationError: If the file is missing, unreadable, or not a mapping
    """
    if not path.exists():
        raise ConfigurationError(
            "Configuration file not found",
            details={"path": str(path)},
        )

    try:
        with open(path, "r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Cannot read configuration file: {e}",
            details={"path": str(path)},
        ) from e

    # Handle empty files
    if content is None:
        return {}

    if not isinstance(content, dict):
        raise ConfigurationError(
            f"Configuration file must contain a mapping, got: {type(content).__name__}",
            details={"path": str(path)},
        )

    return content


def load_config(
    config_path: Path | str | None = None,
    env_prefix: str = "WEB_GRAB",
) -> Settings:
    """
    Load configuration from YAML file with environment variable overrides.

    Priority (highest to lowest):
    1. Environment variables
    2. YAML configuration file
    3. Default values

    Args:
        config_path: Path to YAML configuration file. If None, uses defaults only.
        env_prefix: Prefix for environment variables

    Returns:
        Validated Settings instance

    Raises:
        ConfigurationError: If the file is missing or a value is invalid
    """
    config_data: dict[str, Any] = {}

    # Load from YAML file if provided
    if config_path is not None:
        path = Path(config_path) if isinstance(
            config_path, str) else config_path
        yaml_config = _load_yaml_file(path)
        config_data = _deep_merge(config_data, yaml_config)

    # Load environment variable overrides
    env_overrides = _load_env_overrides(env_prefix)
    config_data = _deep_merge(config_data, env_overrides)

    # Create and validate settings
    try:
        return Settings(**config_data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e.error_count()} error(s)",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e


def reset_settings() -> None:
    """
    Forget the cached default configuration path.

    Useful for testing or after changing directory.
    """
    get_default_config_path.cache_clear()


@lru_cache(maxsize=1)
def get_default_config_path() -> Path | None:
    """
    Find the default configuration file path.

    Searches for web-grab.yaml in:
    1. Current working directory
    2. User's home directory/.web_grab/

    Returns:
        Path to configuration file if found, None otherwise
    """
    search_paths = [
        Path.cwd() / "web-grab.yaml",
        Path.home() / ".web_grab" / "config.yaml",
    ]

    for path in search_paths:
        if path.exists():
            return path

    return None
