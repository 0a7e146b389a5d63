"""Logging setup for runewatch hooks.

Hooks write advisories to stdout, so log records never go there. A rotating
log file is attached only when one is configured.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from runewatch.config import LoggingConfig

LOGGER_NAME = "runewatch"


def configure_logging(config: LoggingConfig) -> logging.Logger:
    """Attach a rotating file handler to the runewatch logger if configured.

    Args:
        config: Logging section of the runewatch configuration.

    Returns:
        The package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    level = logging.getLevelName(config.level)
    logger.setLevel(level if isinstance(level, int) else logging.WARNING)

    if not config.file:
        if not logger.handlers:
            logger.addHandler(logging.NullHandler())
        return logger

    log_file = Path(config.file).expanduser()
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(log_file, maxBytes=1024 * 1024, backupCount=3)
    except OSError:
        # Logging must not break a hook
        return logger

    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )
    handler.setFormatter(formatter)

    # Avoid adding multiple handlers if re-initialized
    if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        logger.addHandler(handler)
    else:
        handler.close()
    return logger
