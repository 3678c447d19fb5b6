"""
Logging for web-grab.

Every module logs through a child of the "web_grab" logger. Log records
go to stderr (and optionally a rotating file) so that stdout stays free
for the status lines and progress bars drawn by web_grab.transfer.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from web_grab.config.settings import LoggingSettings


ROOT_LOGGER_NAME = "web_grab"

_logging_configured = False


def setup_logging(
    settings: "LoggingSettings | None" = None,
    level: str | None = None,
) -> logging.Logger:
    """
    Attach handlers to the web_grab logger once per process.

    Args:
        settings: Logging configuration (defaults if None)
        level: Level name overriding settings.level, e.g. "DEBUG" for --verbose

    Returns:
        The web_grab logger
    """
    global _logging_configured

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if _logging_configured:
        return logger

    if settings is None:
        from web_grab.config.settings import LoggingSettings
        settings = LoggingSettings()

    numeric_level = getattr(logging, (level or settings.level).upper())
    formatter = logging.Formatter(fmt=settings.format, datefmt=settings.date_format)

    logger.handlers.clear()
    logger.setLevel(numeric_level)

    handlers: list[logging.Handler] = []
    if settings.log_to_console:
        handlers.append(logging.StreamHandler(sys.stderr))

    if settings.file_path is not None:
        settings.file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            filename=str(settings.file_path),
            maxBytes=settings.max_file_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        ))

    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.propagate = False
    _logging_configured = True
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Logger for a module, always under the web_grab logger.

    Example:
        >>> get_logger("web_grab.crawler.orchestrator").name
        'web_grab.crawler.orchestrator'
        >>> get_logger("tests").name
        'web_grab.tests'
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name.startswith(ROOT_LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def reset_logging() -> None:
    """Close and detach all handlers so setup_logging() can run again."""
    global _logging_configured

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    _logging_configured = False


class LoggerAdapter(logging.LoggerAdapter):
    """Appends "[key=value]" context, e.g. a crawl task's depth, to each message."""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        if self.extra:
            context_str = " ".join(f"[{k}={v}]" for k, v in self.extra.items())
            msg = f"{msg} {context_str}"
        return msg, kwargs


def get_logger_with_context(name: str | None = None, **context: object) -> LoggerAdapter:
    """
    Logger that tags every message with context.

    Example:
        >>> log = get_logger_with_context(__name__, depth=2)
        >>> log.info("Mirroring: https://example.com/a")  # "... [depth=2]"
    """
    return LoggerAdapter(get_logger(name), context)
