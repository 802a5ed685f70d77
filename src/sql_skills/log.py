"""Loguru sink configuration."""

from __future__ import annotations

import os
import sys

from loguru import logger

DEFAULT_LOG_LEVEL = "WARNING"
LOG_LEVELS: tuple[str, ...] = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")
LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {name}: {message}"


def configure_logging(level: str | None = None) -> None:
    """Replace loguru's default sink with a stderr sink at ``level``.

    Falls back to SQL_SKILLS_LOG_LEVEL, then WARNING.
    """
    resolved = (level or os.environ.get("SQL_SKILLS_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    logger.remove()
    logger.add(sys.stderr, level=resolved, format=LOG_FORMAT)


__all__ = ["configure_logging", "DEFAULT_LOG_LEVEL", "LOG_LEVELS"]
