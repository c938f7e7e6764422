"""Logging setup for setup-ai commands."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_LOGGER_NAME = "setup_ai"


def configure_logging(*, verbose: bool = False) -> logging.Logger:
    """Route setup_ai.* loggers to stderr through rich."""
    from setup_ai import ui

    level = logging.DEBUG if verbose else logging.WARNING
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI is invoked repeatedly.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True, no_color=ui.is_plain()),
        show_path=verbose,
        show_time=verbose,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger
