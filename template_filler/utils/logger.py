"""
Logging setup for Template Filler.

Handles logger creation, logging configuration, optional rich console output
and rotating log files.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEBUG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance for module.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    if not name or not isinstance(name, str):
        raise ValueError("Logger name must be a non-empty string")

    return logging.getLogger(name)


def configure_logging(level: str = "INFO", format_string: Optional[str] = None,
                      log_file: Optional[str] = None, use_rich: bool = False,
                      max_file_size: int = 10 * 1024 * 1024,
                      backup_count: int = 5) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_string: Custom format string
        log_file: Log file path
        use_rich: Render console output with rich
        max_file_size: Maximum log file size in bytes
        backup_count: Number of backup files to keep
    """
    if level.upper() not in VALID_LEVELS:
        raise ValueError(f"Invalid log level: {level}")

    numeric_level = getattr(logging, level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    if use_rich:
        console_handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=level.upper() == "DEBUG",
            markup=False,
            rich_tracebacks=True,
        )
        console_handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(_make_formatter(format_string, level))
    console_handler.setLevel(numeric_level)
    root_logger.addHandler(console_handler)

    if log_file:
        add_file_handler(root_logger, log_file, level, _make_formatter(format_string, "DEBUG"),
                         max_file_size, backup_count)


def add_file_handler(logger: logging.Logger, file_path: str, level: str = "INFO",
                     formatter: Optional[logging.Formatter] = None,
                     max_file_size: int = 10 * 1024 * 1024, backup_count: int = 5) -> None:
    """
    Add rotating file handler to logger.

    Args:
        logger: Logger instance
        file_path: Log file path
        level: Log level for this handler
        formatter: Log formatter
        max_file_size: Maximum log file size in bytes
        backup_count: Number of backup files to keep
    """
    if not file_path or not isinstance(file_path, str):
        raise ValueError("File path must be a non-empty string")

    log_dir = os.path.dirname(file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    file_handler = RotatingFileHandler(
        file_path,
        maxBytes=max_file_size,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    file_handler.setFormatter(formatter or _make_formatter(None, "DEBUG"))

    logger.addHandler(file_handler)


def _make_formatter(format_string: Optional[str], level: str) -> logging.Formatter:
    if format_string:
        return logging.Formatter(format_string)
    fmt = DEBUG_FORMAT if level.upper() == "DEBUG" else DEFAULT_FORMAT
    return logging.Formatter(fmt, datefmt='%Y-%m-%d %H:%M:%S')
