"""Centralized logging configuration for aiagent.

Stdout is reserved for the final result, so every handler writes to stderr
or to the optional log file.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from app.core.config import get_settings

_configured = False


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Configure the aiagent logger with console + optional rotating file handler. Idempotent."""
    global _configured
    logger = logging.getLogger("aiagent")
    if _configured:
        return logger

    settings = get_settings()
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logger.setLevel(level)
    logger.propagate = False

    fmt = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Console handler
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(fmt)
    logger.addHandler(console)

    # File handler (rotating, 5 MB × 3 backups), only when LOG_FILE is set
    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
        )
        file_handler.setFormatter(fmt)
        logger.addHandler(file_handler)

    _configured = True
    logger.debug("Logging initialised (level=%s, file=%s)", logging.getLevelName(level), settings.log_file or "-")
    return logger


def get_logger(name: str = "aiagent") -> logging.Logger:
    """Get a child logger under the ``aiagent`` namespace."""
    if name == "aiagent" or name.startswith("aiagent."):
        return logging.getLogger(name)
    return logging.getLogger(f"aiagent.{name}")
