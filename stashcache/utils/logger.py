# stashcache/utils/logger.py
"""
Logging setup for applications and examples using stashcache.

The library itself only creates module loggers; call `setup_logging` once at
start-up to get rich console output (stderr) and an optional log file.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(message)s"


def setup_logging(
    name: str = "stashcache",
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    driver_level: Optional[int] = None,
) -> logging.Logger:
    """
    Configure the `stashcache` logger hierarchy.

    Args:
        name: Logger to configure.
        level: Level for the logger and its console handler.
        log_file: If given, records are also written to this file.
        driver_level: Separate level for `stashcache.drivers` (they are chatty
                      at DEBUG).

    Returns:
        The configured logger.
    """
    logger = logging.getLogger(name)
    # Avoid duplicate handlers when called twice
    if logger.hasHandlers():
        logger.handlers.clear()
    logger.setLevel(level)

    console_handler = RichHandler(
        level=level,
        console=Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)

    if driver_level is not None:
        logging.getLogger(f"{name}.drivers").setLevel(driver_level)

    return logger
