"""Runtime logging helpers."""

from __future__ import annotations

import os
import sys

from loguru import logger

_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<7} | {name}:{function}:{line} | {message}"


def configure_logging(level: str | None = None) -> None:
    """Route tessera's log records to stderr. Safe to call more than once."""
    level = (level or os.getenv("TESSERA_LOG_LEVEL", "WARNING")).upper()
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=_FORMAT,
        backtrace=False,
        diagnose=False,
    )
    logger.enable("tessera")
