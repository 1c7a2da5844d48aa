"""
================================================================================
Logging Setup
================================================================================

Centralized Loguru configuration for the Taiga suites.

Settings (from ConfigLoader):
    - logging.level: DEBUG, INFO, WARNING, ERROR
    - logging.format: Loguru format string
    - logging.file: optional log file with rotation and retention
    - logging.rotation / logging.retention

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from .config_loader import ConfigLoader


DEFAULT_LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"
)

_logger_initialized: bool = False


def init_logger(
    config: Optional[ConfigLoader] = None,
    level: Optional[str] = None,
    force: bool = False,
) -> None:
    """
    Initializes the global Loguru logger with consistent configuration.

    Safe to call from every entry point; only the first call (or a call
    with ``force=True``) reconfigures the sinks.

    Args:
        config: Configuration source. Creates a ConfigLoader if None.
        level: Log level override. Defaults to the configured value.
        force: Reconfigure even if already initialized.
    """
    global _logger_initialized

    if _logger_initialized and not force:
        return

    config = config or ConfigLoader()
    log_level = (level or config.get("logging.level", "INFO")).upper()
    log_format = config.get("logging.format", DEFAULT_LOG_FORMAT)

    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level,
        format=log_format,
        colorize=True,
        backtrace=True,
        diagnose=False,
    )

    log_file = config.get("logging.file")
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=log_level,
            format=log_format.replace("{level: <8}", "{level}"),  # Remove padding for file
            rotation=config.get("logging.rotation", "10 MB"),
            retention=config.get("logging.retention", "7 days"),
        )

    _logger_initialized = True
    logger.debug(f"Logger initialized with level: {log_level}")


__all__ = [
    "init_logger",
]
