"""Logging setup for the catalog package.

Module code logs through ``logging.getLogger(__name__)``; entry points
(worker boot, scripts) call ``configure_logging`` once so everything under
the ``catalog`` namespace shares one set of handlers.
"""

import logging
import logging.handlers
import os
from typing import List, Optional

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
ISO_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _resolve_level(level: str) -> int:
    level_upper = (level or "").upper()
    if level_upper not in LEVELS:
        raise ValueError(f"Invalid log level: {level}. Must be one of: {', '.join(LEVELS)}")
    return getattr(logging, level_upper)


def _build_handlers(
    name: str,
    log_dir: Optional[str],
    max_bytes: int,
    backup_count: int,
    console: bool,
) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                os.path.join(log_dir, f"{name}.log"),
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
        )
    if console:
        handlers.append(logging.StreamHandler())
    return handlers


def setup_logger(
    name: str = "catalog",
    level: str = "INFO",
    log_dir: Optional[str] = None,
    console: bool = True,
    log_format: str = DEFAULT_FORMAT,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Attach console and (optionally) rotating file handlers to ``name``.

    Calling it again for the same logger only updates the level.

    Args:
        name: Logger namespace, usually the top-level package
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_dir: Directory for ``<name>.log``; no file handler when empty
        console: Also log to stderr
        log_format: Format string; timestamps are ISO 8601
        max_bytes: Rotation threshold for the file handler
        backup_count: Rotated files to keep

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))
    if logger.handlers:
        return logger

    formatter = logging.Formatter(log_format, datefmt=ISO_DATE_FORMAT)
    for handler in _build_handlers(name, log_dir, max_bytes, backup_count, console):
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def configure_logging(settings) -> logging.Logger:
    """Configure the ``catalog`` logger from application settings."""
    return setup_logger(
        "catalog",
        level=settings.log_level,
        log_dir=settings.log_dir if settings.log_to_file else None,
    )
