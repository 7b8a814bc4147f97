"""
Centralized logging setup for refman.

Handlers are attached to the "refman" package logger, so every module
logger obtained with get_logger(__name__) inherits them while the root
logger is left to the host application. Diagnostics go to standard
error, never standard output, so query results printed by the command
line stay clean. A rotating log file is added when a logs directory is
configured.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List

from .exceptions import ConfigurationError


PACKAGE_LOGGER = "refman"
LOG_FILENAME = "refman.log"

# Handler names marking the handlers setup_logging owns.
STDERR_HANDLER = "refman.stderr"
FILE_HANDLER = "refman.file"


def _owned_handlers(logger: logging.Logger) -> List[logging.Handler]:
    return [h for h in logger.handlers if h.get_name() in (STDERR_HANDLER, FILE_HANDLER)]


def setup_logging(
    log_level: str = "WARNING",
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    logs_directory: Path = None,
    max_file_size_mb: int = 10,
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure the package logger with a stderr handler and optional file handler.

    Calling it again replaces the handlers installed by the previous
    call, so the last configuration wins.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
                   Unknown names fall back to WARNING.
        log_format: Format string for log messages.
        logs_directory: Directory for log files. If None, file logging disabled.
        max_file_size_mb: Maximum size of each log file in MB.
        backup_count: Number of backup files to keep.

    Returns:
        The configured package logger.

    Raises:
        ConfigurationError: If the log file cannot be opened.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    teardown_logging()

    package_logger.setLevel(getattr(logging, str(log_level).upper(), logging.WARNING))
    package_logger.propagate = False

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.set_name(STDERR_HANDLER)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if logs_directory:
        logs_directory = Path(logs_directory)
        try:
            logs_directory.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                logs_directory / LOG_FILENAME,
                maxBytes=int(max_file_size_mb * 1024 * 1024),
                backupCount=backup_count,
                encoding="utf-8"
            )
        except OSError as e:
            raise ConfigurationError(
                f"Cannot open log file in {logs_directory}: {e}",
                {"logs_directory": str(logs_directory)}
            )
        file_handler.set_name(FILE_HANDLER)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    return package_logger


def teardown_logging() -> None:
    """Remove and close the handlers installed by setup_logging."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in _owned_handlers(package_logger):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger instance.

    Args:
        name: Logger name, typically __name__ of the calling module.

    Returns:
        Logger instance; output is governed by setup_logging().
    """
    return logging.getLogger(name)
