"""Centralized logging configuration.

Modules create their logger at import time with ``get_logger(__name__)``,
before settings are loaded. ``configure_logging`` later applies the
configured level to every logger created so far and to all later ones.
"""

import logging
import sys
from typing import Optional, Set

DEFAULT_LOG_LEVEL = "INFO"

_default_level = DEFAULT_LOG_LEVEL
_managed_loggers: Set[str] = set()


def _resolve_level(level: str) -> int:
    resolved = getattr(logging, str(level).strip().upper(), None)
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Get a configured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)
        level: Optional log level override (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            defaults to the level set by configure_logging

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name)

    log_level = _resolve_level(level or _default_level)
    logger.setLevel(log_level)

    # Avoid duplicate handlers
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)

        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        console_handler.setFormatter(formatter)

        logger.addHandler(console_handler)

    if level is None:
        _managed_loggers.add(name)

    return logger


def configure_logging(level: str) -> None:
    """Apply a process-wide log level.

    Loggers obtained with an explicit ``level`` keep their override.

    Raises:
        ValueError: If the level name is unknown
    """
    global _default_level
    log_level = _resolve_level(level)
    _default_level = logging.getLevelName(log_level)

    for name in _managed_loggers:
        logger = logging.getLogger(name)
        logger.setLevel(log_level)
        for handler in logger.handlers:
            handler.setLevel(log_level)
