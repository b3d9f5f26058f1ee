"""
Logging setup for DOCX Templater.

Library modules log through ``logging.getLogger(__name__)``; this module only
configures handlers for applications and the command line.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
DEFAULT_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _validate_level(level: str) -> int:
    if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level}")
    return getattr(logging, level.upper())


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


def configure_logging(level: str = "INFO", log_file: Optional[str] = None,
                      rich_output: bool = False, max_file_size: int = 10 * 1024 * 1024,
                      backup_count: int = 5) -> logging.Logger:
    """
    Configure the ``docx_templater`` logger hierarchy.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path (rotated)
        rich_output: Render console output with rich
        max_file_size: Maximum log file size in bytes
        backup_count: Number of backup files to keep

    Returns:
        The configured package logger
    """
    numeric_level = _validate_level(level)

    logger = logging.getLogger('docx_templater')
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    if rich_output:
        console_handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
        console_handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT))
    console_handler.setLevel(numeric_level)
    logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = RotatingFileHandler(log_file, maxBytes=max_file_size, backupCount=backup_count)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def set_log_level(level: str) -> None:
    """Set level of the package logger and all of its handlers."""
    numeric_level = _validate_level(level)

    logger = logging.getLogger('docx_templater')
    logger.setLevel(numeric_level)
    for handler in logger.handlers:
        handler.setLevel(numeric_level)
