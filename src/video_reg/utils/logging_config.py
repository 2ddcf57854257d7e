"""Logging setup: a rich console handler on the ``video_reg`` logger tree."""

import logging
import sys
from typing import TYPE_CHECKING, Optional

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from video_reg.config.schemas import LoggingConfig

LOGGER_NAME = "video_reg"

# Libraries that log per frame or per request
NOISY_LIBRARIES = ("easyocr", "PIL", "werkzeug")

_PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
# Extraction runs on a worker thread, so files record which thread logged
_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def _console_handler(rich_formatting: bool) -> logging.Handler:
    if rich_formatting:
        handler = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_time=True,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        return handler

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_PLAIN_FORMAT, datefmt=_DATE_FORMAT))
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    rich_formatting: bool = True,
    library_level: str = "WARNING",
) -> logging.Logger:
    """
    Configure the ``video_reg`` logger.

    Calling it again replaces the handlers of the previous call, so the CLI
    and the web app can each reconfigure logging from their own config.

    Args:
        level: Level for video_reg loggers (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file that receives the same records
        rich_formatting: Use rich console output instead of plain lines
        library_level: Level applied to NOISY_LIBRARIES

    Returns:
        The ``video_reg`` logger

    Raises:
        ValueError: If a level name is unknown
    """
    global _configured

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_console_handler(rich_formatting))

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT))
        logger.addHandler(file_handler)

    for name in NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level.upper())

    _configured = True
    return logger


def configure_logging(config: "LoggingConfig") -> logging.Logger:
    """Apply a LoggingConfig section."""
    return setup_logging(
        level=config.level,
        log_file=config.file,
        rich_formatting=config.rich_formatting,
        library_level=config.library_level,
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger inside the ``video_reg`` tree.

    Modules pass ``__name__``; anything outside the tree becomes a child of
    ``video_reg``. Logging is set up with defaults on first use.
    """
    if not _configured:
        setup_logging()

    if not name or name == LOGGER_NAME:
        return logging.getLogger(LOGGER_NAME)
    if name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(LOGGER_NAME).getChild(name)
