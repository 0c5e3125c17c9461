"""Logging configuration helpers for the drill backend."""

from __future__ import annotations

import logging
from logging import Logger

from .settings import settings


def configure_logging() -> Logger:
    """Configure basic logging for the application and return the package logger."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    # httpx logs every request URL at INFO, including the key query parameter
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return logging.getLogger("mathdrill")
