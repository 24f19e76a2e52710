"""
Tests for the console logging helper.
"""
import io
import logging

from rich.console import Console
from rich.logging import RichHandler

from griefscan.log import configure_logging


def test_configure_logging_installs_single_rich_handler():
    console = Console(file=io.StringIO(), width=120)
    logger = configure_logging("debug", console=console)
    configure_logging("debug", console=console)
    try:
        handlers = [h for h in logger.handlers if isinstance(h, RichHandler)]
        assert len(handlers) == 1
        assert logger.level == logging.DEBUG

        logging.getLogger("griefscan.core.engine").debug("rule evaluation started")
        assert "rule evaluation started" in console.file.getvalue()
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)


def test_unknown_level_name_falls_back_to_info():
    logger = configure_logging("chatty", console=Console(file=io.StringIO()))
    try:
        assert logger.level == logging.INFO
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
