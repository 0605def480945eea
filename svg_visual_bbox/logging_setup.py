"""Logging configuration for the CLI and interactive use.

Library modules only create ``logging.getLogger(__name__)`` loggers; this
module attaches a single rich handler to the package logger on request.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "svg_visual_bbox"


def setup_logging(level: str | int = "WARNING", console: Console | None = None) -> logging.Logger:
    """Route package log records to stderr through rich.

    Calling it again only changes the level; handlers are not duplicated.

    Args:
        level: Level name (``"DEBUG"``) or number.
        console: Console to render to; defaults to a stderr console.

    Returns:
        The package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logger.setLevel(level)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    return logger
