"""
Logging setup for applications embedding griefscan.

The library itself only calls ``logging.getLogger(__name__)``; hosts that
want readable console output call :func:`configure_logging` once.
"""
import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: Union[int, str] = logging.INFO, console: Optional[Console] = None) -> logging.Logger:
    """Route the ``griefscan`` logger through a rich handler."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    handler = RichHandler(rich_tracebacks=True, console=console, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logger = logging.getLogger("griefscan")
    for existing in list(logger.handlers):
        if isinstance(existing, RichHandler):
            logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
