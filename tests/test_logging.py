"""
Tests for logging setup.
"""

import logging
from pathlib import Path

from web_grab.config import LoggingSettings
from web_grab.utils.logging import (
    ROOT_LOGGER_NAME,
    get_logger,
    get_logger_with_context,
    setup_logging,
)


class TestSetupLogging:
    def test_defaults(self):
        logger = setup_logging()

        assert logger.name == ROOT_LOGGER_NAME
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1
        assert not logger.propagate

    def test_configured_once(self):
        setup_logging()
        logger = setup_logging(level="DEBUG")

        assert len(logger.handlers) == 1
        assert logger.level == logging.INFO

    def test_level_override(self):
        logger = setup_logging(LoggingSettings(level="WARNING"), level="debug")

        assert logger.level == logging.DEBUG

    def test_file_handler(self, temp_dir: Path):
        log_file = temp_dir / "logs" / "web-grab.log"
        settings = LoggingSettings(file_path=str(log_file), log_to_console=False)

        logger = setup_logging(settings)
        get_logger("tests").warning("written to file")
        for handler in logger.handlers:
            handler.flush()

        assert len(logger.handlers) == 1
        assert "written to file" in log_file.read_text(encoding="utf-8")


class TestLoggers:
    def test_children_of_root(self):
        assert get_logger().name == ROOT_LOGGER_NAME
        assert get_logger("web_grab.crawler").name == "web_grab.crawler"
        assert get_logger("other").name == "web_grab.other"

    def test_context_appended(self):
        log = get_logger_with_context("tests", depth=2)

        msg, _ = log.process("Mirroring: https://example.com/", {})

        assert msg == "Mirroring: https://example.com/ [depth=2]"
