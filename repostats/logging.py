"""Logging setup for repostats."""

import logging

from rich.console import Console
from rich.logging import RichHandler

_LOGGER_NAME = "repostats"

# Diagnostics and progress share stderr; stdout carries only the JSON result
console = Console(stderr=True)


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Attach a single rich handler to the package logger."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(console=console, show_path=verbose, markup=False)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger
