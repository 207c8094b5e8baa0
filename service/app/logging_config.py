"""
Logging configuration for the bot service.

Every module logs through a child of the "polza" logger, so one call to
setup_logging() configures the whole service.
"""

import logging
import sys

ROOT_LOGGER_NAME = "polza"


def setup_logging(level: str = "DEBUG") -> logging.Logger:
    """Setup logging with proper format and handlers."""

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level.upper())

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level.upper())

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
    """Return a logger under the service namespace (e.g. polza.sheets)."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


# Global logger instance
bot_logger = get_logger("telegram_bot")
