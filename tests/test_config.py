"""
Tests for configuration module.

Tests settings loading, validation, and environment variable overrides.
"""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from web_grab.config import (
    BatchSettings,
    FetchSettings,
    MirrorSettings,
    Settings,
    get_default_config_path,
    load_config,
    reset_settings,
)
from web_grab.core.exceptions import ConfigurationError


class TestSettings:
    """Tests for Settings model."""

    def test_default_settings_valid(self):
        """Default settings should match the command-line defaults."""
        settings = Settings()

        assert settings.mirror.max_depth == 3
        assert settings.mirror.max_concurrent == 5
        assert settings.batch.max_concurrent == 5
        assert settings.fetch.rate_limit is None
        assert settings.fetch.rate_limit_bytes == 0
        assert settings.fetch.user_agent.startswith("web-grab/")

    def test_fetch_rate_limit_validation(self):
        assert FetchSettings(rate_limit="200k").rate_limit_bytes == 200 * 1024
        assert FetchSettings(rate_limit="2M").rate_limit_bytes == 2 * 1024 * 1024

        with pytest.raises(ValidationError):
            FetchSettings(rate_limit="fast")

    def test_mirror_settings_validation(self):
        with pytest.raises(ValidationError):
            MirrorSettings(max_concurrent=0)
        with pytest.raises(ValidationError):
            MirrorSettings(max_depth=-1)

    def test_mirror_fields(self):
        """Every mirror setting is one the crawler reads."""
        assert set(MirrorSettings.model_fields) == {
            "max_depth",
            "max_concurrent",
            "reject_extensions",
            "exclude_paths",
        }

    def test_reject_extensions_normalized(self):
        mirror = MirrorSettings(reject_extensions=[" .png", "jpg", " "])
        assert mirror.reject_extensions == ["png", "jpg"]

    def test_assignment_validated(self):
        batch = BatchSettings()
        with pytest.raises(ValidationError):
            batch.max_concurrent = 0

    def test_output_dir_converted(self):
        assert FetchSettings(output_dir="downloads").output_dir == Path("downloads")

    def test_unknown_section_rejected(self):
        with pytest.raises(ValidationError):
            Settings(crawler={"max_pages": 10})


class TestLoadConfig:
    """Tests for load_config."""

    def test_load_defaults(self):
        settings = load_config()
        assert settings.mirror.max_depth == 3

    def test_load_yaml(self, temp_dir: Path):
        path = temp_dir / "web-grab.yaml"
        path.write_text(yaml.safe_dump({
            "fetch": {"rate_limit": "500k", "timeout_seconds": 10},
            "mirror": {"max_depth": 1, "reject_extensions": ["png", "gif"]},
        }))

        settings = load_config(path)

        assert settings.fetch.rate_limit_bytes == 500 * 1024
        assert settings.fetch.timeout_seconds == 10
        assert settings.mirror.max_depth == 1
        assert settings.mirror.reject_extensions == ["png", "gif"]

    def test_empty_yaml(self, temp_dir: Path):
        path = temp_dir / "empty.yaml"
        path.write_text("")

        assert load_config(path).batch.max_concurrent == 5

    def test_missing_file(self, temp_dir: Path):
        with pytest.raises(ConfigurationError):
            load_config(temp_dir / "missing.yaml")

    def test_yaml_not_mapping(self, temp_dir: Path):
        path = temp_dir / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_invalid_value(self, temp_dir: Path):
        path = temp_dir / "bad.yaml"
        path.write_text(yaml.safe_dump({"fetch": {"rate_limit": "10x"}}))

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path)

        assert "Invalid configuration" in str(exc_info.value)


class TestEnvironmentOverrides:
    """Tests for WEB_GRAB__SECTION__KEY overrides."""

    def test_scalar_override(self, monkeypatch):
        monkeypatch.setenv("WEB_GRAB__MIRROR__MAX_DEPTH", "7")
        monkeypatch.setenv("WEB_GRAB__FETCH__FOLLOW_REDIRECTS", "false")

        settings = load_config()

        assert settings.mirror.max_depth == 7
        assert settings.fetch.follow_redirects is False

    def test_list_override(self, monkeypatch):
        monkeypatch.setenv("WEB_GRAB__MIRROR__REJECT_EXTENSIONS", "png, jpg")
        monkeypatch.setenv("WEB_GRAB__MIRROR__EXCLUDE_PATHS", "/private")

        settings = load_config()

        assert settings.mirror.reject_extensions == ["png", "jpg"]
        assert settings.mirror.exclude_paths == ["/private"]

    def test_rate_limit_kept_as_string(self, monkeypatch):
        monkeypatch.setenv("WEB_GRAB__FETCH__RATE_LIMIT", "1024")

        settings = load_config()

        assert settings.fetch.rate_limit == "1024"
        assert settings.fetch.rate_limit_bytes == 1024

    def test_env_beats_yaml(self, temp_dir: Path, monkeypatch):
        path = temp_dir / "web-grab.yaml"
        path.write_text(yaml.safe_dump({"batch": {"max_concurrent": 2}}))
        monkeypatch.setenv("WEB_GRAB__BATCH__MAX_CONCURRENT", "9")

        assert load_config(path).batch.max_concurrent == 9

    def test_invalid_env_value(self, monkeypatch):
        monkeypatch.setenv("WEB_GRAB__MIRROR__MAX_CONCURRENT", "0")

        with pytest.raises(ConfigurationError):
            load_config()



class TestDefaultConfigPath:
    """Tests for the default configuration file search."""

    @pytest.fixture(autouse=True)
    def isolated_home(self, monkeypatch, temp_dir: Path) -> Path:
        home = temp_dir / "home"
        home.mkdir()
        monkeypatch.setenv("HOME", str(home))
        monkeypatch.chdir(temp_dir)
        return home

    def test_none_found(self):
        assert get_default_config_path() is None

    def test_cwd_file(self, temp_dir: Path):
        path = temp_dir / "web-grab.yaml"
        path.write_text(yaml.safe_dump({"mirror": {"max_depth": 4}}))

        assert get_default_config_path() == path
        assert load_config(get_default_config_path()).mirror.max_depth == 4

    def test_home_file(self, isolated_home: Path):
        path = isolated_home / ".web_grab" / "config.yaml"
        path.parent.mkdir()
        path.write_text(yaml.safe_dump({"batch": {"max_concurrent": 2}}))

        assert get_default_config_path() == path

    def test_reset_forgets_cached_path(self, temp_dir: Path):
        assert get_default_config_path() is None

        (temp_dir / "web-grab.yaml").write_text("")
        assert get_default_config_path() is None

        reset_settings()
        assert get_default_config_path() == temp_dir / "web-grab.yaml"
