"""
Logging configuration for the command center.

Every module logs through a child of the ``command_center`` logger so one
handler and one format cover the webhook, the dispatcher and the adapters.
"""

import logging
import sys

ROOT_LOGGER_NAME = "command_center"


def setup_logging(level: str = "DEBUG") -> logging.Logger:
    """Setup logging with proper format and handlers."""

    # Create logger
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level.upper())

    # Remove existing handlers
    logger.handlers.clear()

    # Create console handler with formatting
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG)

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
    """Child logger, e.g. get_logger("vercel") -> command_center.vercel."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
