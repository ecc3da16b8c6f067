"""
Logging configuration for botwire.
"""

import logging
import sys

LOGGER_NAME = "botwire"


def setup_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Setup logging with proper format and handlers."""

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    formatter = logging.Formatter(
        '[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child of the package logger, e.g. ``botwire.polling``."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
