"""Logging set-up for the package."""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys

_LOGGER_NAME = "aquarius"
_ACTIVE_FILE = "file.log"
_MAX_SIZE = 16 * 1024 * 1024
_MAX_FILES = 512

_CONSOLE_FORMAT = "%(asctime)s:[%(levelname)s] %(message)s"
_FILE_FORMAT = "[%(levelname)s]:[%(thread)d]<%(asctime)s> %(message)s"


def init_logger(log_dir: str | os.PathLike[str] = "logs", console: bool = True) -> logging.Logger:
    """Configure the package logger with a rotating file and an optional console sink.

    The file sink keeps records of level INFO and above; the console sink keeps all.
    Calling it again replaces the handlers set up before.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    if console:
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        logger.addHandler(stream)

    os.makedirs(log_dir, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        os.path.join(log_dir, _ACTIVE_FILE),
        maxBytes=_MAX_SIZE,
        backupCount=_MAX_FILES,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
    logger.addHandler(file_handler)

    return logger