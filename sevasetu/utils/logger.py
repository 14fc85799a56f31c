"""Centralized logging setup for the API process."""

import logging
from typing import Optional

from sevasetu.core.settings import settings


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level_name: Optional[str] = None) -> logging.Logger:
    """
    Install a single stream handler on the ``sevasetu`` logger.

    Safe to call more than once; the handler is only added the first time.
    """
    level_name = (level_name or settings.LOG_LEVEL or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    logger = logging.getLogger("sevasetu")
    logger.setLevel(level)

    if not any(getattr(h, "_sevasetu", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
        handler._sevasetu = True
        logger.addHandler(handler)

    for handler in logger.handlers:
        handler.setLevel(level)

    logger.info(f"Logging initialized at {level_name}")
    return logger
