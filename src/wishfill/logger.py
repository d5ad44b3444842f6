"""
Logging configuration for Wishfill.
"""
import logging
import sys
from typing import Optional

from .config import Config

ROOT_LOGGER_NAME = "wishfill"


def setup_logger(
    name: str,
    level: Optional[str] = None,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Set up a logger with consistent formatting.

    Args:
        name: Logger name (usually __name__)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_string: Custom format string

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    level = level or Config.LOG_LEVEL
    format_string = format_string or Config.LOG_FORMAT

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(format_string))
    logger.addHandler(handler)

    logger.propagate = False

    return logger


logger = setup_logger(ROOT_LOGGER_NAME)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Module names already inside the package (``wishfill.services.vision``)
    are used as-is; anything else is nested under ``wishfill.``.

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger instance
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return setup_logger(name)
    return setup_logger(f"{ROOT_LOGGER_NAME}.{name}")
