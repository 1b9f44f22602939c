"""
Loguru configuration for the command line entry point.

Library code only calls ``logger``; sinks are installed here once.
"""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from config import Settings, get_settings


def configure_logging(settings: Settings | None = None, verbose: bool = False) -> None:
    """Replace the default sink with stderr plus an optional rotating file."""
    settings = settings or get_settings()
    level = "DEBUG" if verbose else settings.log_level

    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "WARNING",
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            level=level,
            rotation="5 MB",
            retention=3,
            encoding="utf-8",
        )
