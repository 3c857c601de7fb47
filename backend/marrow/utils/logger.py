"""
Logging setup shared by every marrow module.
"""
import logging
from typing import Optional

from marrow.configs.app_configs import LOG_LEVEL

_DEFAULT_LOGGER_NAME = "marrow"
_FORMAT = "%(asctime)s %(levelname)-8s %(name)s %(filename)s:%(lineno)d - %(message)s"


def _resolve_level(log_level: Optional[str]) -> int:
    level = logging.getLevelName((log_level or LOG_LEVEL).upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logger(
    name: str = _DEFAULT_LOGGER_NAME,
    log_level: Optional[str] = None,
) -> logging.Logger:
    """
    Return the named logger, installing a stream handler on first use.

    Args:
        name: Logger name, defaults to the package logger
        log_level: Level name overriding MARROW_LOG_LEVEL

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        if log_level:
            logger.setLevel(_resolve_level(log_level))
        return logger

    logger.setLevel(_resolve_level(log_level))

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    return logger
