"""Logging configuration for xkbmon."""

import logging
import sys
from logging.handlers import RotatingFileHandler

from .config import get_app_data_dir

LOG_FILE_NAME = "app.log"
LOG_FILE_MAX_BYTES = 1024 * 1024
LOG_FILE_BACKUPS = 3


def _make_file_handler() -> RotatingFileHandler:
    log_dir = get_app_data_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    return handler


def _make_stderr_handler() -> logging.StreamHandler:
    # stdout carries the labels
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S"))
    return handler


def setup_logging(debug: bool = False) -> logging.Logger:
    """
    Log to a rotating file in the app data directory, and to stderr in debug mode.

    Calling it again replaces the handlers of the previous call.

    Args:
        debug: If True, lower the level to DEBUG and also log to stderr

    Returns:
        The "xkbmon" logger
    """
    logger = logging.getLogger("xkbmon")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_make_file_handler())
    if debug:
        logger.addHandler(_make_stderr_handler())

    return logger
