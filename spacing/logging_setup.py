"""Loguru sink configuration shared by the CLI and the API."""

from __future__ import annotations

import sys

from loguru import logger

from config import Settings


def configure_logging(settings: Settings, level: str | None = None) -> None:
    """Replace the default sink with stderr (and the log file, if configured)."""
    level = level or settings.log_level
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if settings.log_file:
        logger.add(settings.log_file, level=level, rotation="10 MB", retention=5)
