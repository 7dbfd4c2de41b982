"""
Logging configuration helper for applications embedding github_client.

The library itself only attaches a ``NullHandler``; call :func:`setup_logging`
once at startup to see pacing, retry and credential messages.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Path | None = None,
) -> logging.Logger:
    """
    Attach console (and optionally file) handlers to the ``github_client`` logger.

    Args:
        log_level: Minimum level emitted by the package logger.
        log_format: Format string shared by all handlers.
        log_file: Optional file receiving the same records.

    Returns:
        The configured package logger.
    """
    package_logger = logging.getLogger("github_client")
    package_logger.setLevel(log_level)

    for handler in package_logger.handlers[:]:
        if not isinstance(handler, logging.NullHandler):
            package_logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    return package_logger
