"""Logging configuration helpers."""
from __future__ import annotations

from pathlib import Path
import sys
from typing import Optional, Union

from loguru import logger

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"


def configure_logging(level: str = "INFO", log_file: Optional[Union[str, Path]] = None) -> None:
    """Configure loguru with a friendly console sink.

    ``log_file`` adds a plain-text sink at DEBUG level so an on-site
    calibration session keeps every placement and tick for later review.
    """
    logger.remove()
    logger.add(sink=sys.stderr, level=level.upper(), format=CONSOLE_FORMAT)
    if log_file is not None:
        logger.add(sink=Path(log_file), level="DEBUG", format=FILE_FORMAT, encoding="utf-8")
