"""Logging setup and configuration."""

import io
import logging
import os
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from cloudadmin.logging.formatters import ConsoleFormatter, JSONFormatter

DEFAULT_CONSOLE_LEVEL = logging.INFO
DEFAULT_FILE_LEVEL = logging.DEBUG
DEFAULT_ROTATION_WHEN = "midnight"
DEFAULT_BACKUP_COUNT = 7

# Noisy loggers to suppress
NOISY_LOGGERS = [
    "azure.core.pipeline.policies.http_logging_policy",
    "azure.identity",
    "azure.identity.aio",
    "azure.core",
    "aiohttp",
    "urllib3",
]


def setup_logging(
    name: str = "cloudadmin",
    level: int | None = None,
    json_format: bool = False,
    log_file: Path | str | None = None,
    file_level: int = DEFAULT_FILE_LEVEL,
    rotation_when: str = DEFAULT_ROTATION_WHEN,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    suppress_noisy: bool = True,
) -> logging.Logger:
    """
    Configure root logging with a console handler and an optional rotating file.

    Args:
        name: Logger name to return
        level: Console level; defaults to CLOUDADMIN_LOG_LEVEL or INFO
        json_format: Emit JSON lines on the console instead of readable text
        log_file: Optional path for a time-rotated JSON log file
        file_level: File handler level (default: DEBUG)
        rotation_when: TimedRotatingFileHandler 'when' value (default: midnight)
        backup_count: Number of rotated files to keep (default: 7)
        suppress_noisy: Quiet down Azure SDK and HTTP client loggers

    Returns:
        Configured logger instance
    """
    if level is None:
        level_name = os.getenv("CLOUDADMIN_LOG_LEVEL", "INFO").upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            level = DEFAULT_CONSOLE_LEVEL

    if sys.platform == "win32":
        stream = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")
    else:
        stream = sys.stdout
    console_handler = logging.StreamHandler(stream)
    console_handler.setLevel(level)
    console_handler.setFormatter(JSONFormatter() if json_format else ConsoleFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            log_path,
            when=rotation_when,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    if suppress_noisy:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    logger = logging.getLogger(name)
    logger.debug(f"Logging initialized: file={log_file}, json={json_format}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a module logger; a thin alias kept for symmetry with setup_logging."""
    return logging.getLogger(name)
