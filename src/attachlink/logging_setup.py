"""Logging configuration for the attachlink CLI and embedding sessions."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from attachlink.config.models import LoggingSettings

_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_HANDLER_MARKER = "_attachlink_handler"


def configure_logging(
    settings: LoggingSettings,
    log_path: Path | None = None,
    *,
    console: bool = True,
) -> logging.Logger:
    """Attach console and rotating-file handlers to the ``attachlink`` logger.

    Calling this again replaces handlers installed by a previous call, so CLI
    commands can reconfigure logging per invocation.

    Args:
        settings: Logging section of the loaded configuration.
        log_path: Optional file receiving a rotating log.
        console: Whether to emit records on stderr through Rich.

    Returns:
        logging.Logger: The configured package logger.
    """

    logger = logging.getLogger("attachlink")
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            logger.removeHandler(handler)
            handler.close()

    if console:
        rich_handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
        rich_handler.setLevel(level)
        setattr(rich_handler, _HANDLER_MARKER, True)
        logger.addHandler(rich_handler)

    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max(1, settings.max_size_mb) * 1024 * 1024,
            backupCount=max(0, settings.backup_count),
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        # File logs keep debug detail regardless of console verbosity.
        file_handler.setLevel(logging.DEBUG)
        setattr(file_handler, _HANDLER_MARKER, True)
        logger.addHandler(file_handler)
        logger.setLevel(min(level, logging.DEBUG))

    return logger


__all__ = ["configure_logging"]
