"""Utility functions for taskmark."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    console: bool = True,
) -> None:  # pragma: no cover
    """Configure loguru sinks.

    Args:
        level: Minimum level for every sink
        log_file: Optional file to log to, rotated at 10 MB
        console: Whether to log to stderr
    """
    logger.remove()

    if console:
        logger.add(sys.stderr, level=level, backtrace=True, diagnose=True, colorize=True)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_file),
            level=level,
            rotation="10 MB",
            retention="10 days",
            backtrace=True,
            diagnose=True,
            enqueue=True,
            colorize=False,
        )

    logger.debug(f"Logging configured at level {level}")
