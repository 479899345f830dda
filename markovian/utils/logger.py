"""
Logging helpers shared by the service and the routers.
"""

import logging
import sys
from typing import Any, Optional

from markovian.config import settings

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_ROOT = "markovian"


def setup_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a logger with a single stream handler attached.

    Args:
        name: Logger name, usually __name__
        level: Level name, defaults to settings.LOG_LEVEL
    """
    logger = logging.getLogger(name)
    logger.setLevel((level or settings.LOG_LEVEL).upper())

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    return logger


def _format(message: str, fields: dict) -> str:
    if not fields:
        return message
    extra = " ".join(f"{k}={v}" for k, v in fields.items())
    return f"{message} | {extra}"


def log_info(message: str, **fields: Any) -> None:
    logging.getLogger(_ROOT).info(_format(message, fields))


def log_warning(message: str, **fields: Any) -> None:
    logging.getLogger(_ROOT).warning(_format(message, fields))


def log_error(message: str, exc_info: bool = False, **fields: Any) -> None:
    logging.getLogger(_ROOT).error(_format(message, fields), exc_info=exc_info)
