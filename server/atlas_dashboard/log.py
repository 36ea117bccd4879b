"""Logging configuration."""

import sys

from loguru import logger

from .config import Settings


def configure_logging(settings: Settings) -> None:
    """Route loguru output to stderr and, optionally, a rotating file."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper())
    if settings.log_file:
        logger.add(settings.log_file, level=settings.log_level.upper(), rotation="10 MB")
