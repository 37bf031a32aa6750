"""File logging for the library's `briks` logger.

A terminal UI owns the screen it runs on, so its logs go to a file instead.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

__all__ = ["configure_logging"]

_LOGGER_NAME = "briks"

DEFAULT_LOG_FILE = "briks.log"
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(
    path: str | os.PathLike[str] | None = None, level: int | str | None = None
) -> logging.Logger:
    """Sends the library's log records to a file.

    Calling this more than once does nothing, so it is safe to call from both
    an application and its entrypoint.

    Args:
        path: The file to append to. Defaults to `$BRIKS_LOG`, then to
            `briks.log` in the working directory.
        level: The lowest level to record. Defaults to `$BRIKS_LOG_LEVEL`, then
            to DEBUG.

    Returns:
        The configured logger.
    """

    logger = logging.getLogger(_LOGGER_NAME)

    if any(isinstance(handler, logging.FileHandler) for handler in logger.handlers):
        return logger

    if path is None:
        path = os.getenv("BRIKS_LOG", DEFAULT_LOG_FILE)

    if level is None:
        level = os.getenv("BRIKS_LOG_LEVEL", "DEBUG").upper()

    logger.setLevel(level)

    handler = logging.FileHandler(Path(path), encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    logger.debug("logging to %s at %s", path, logging.getLevelName(logger.level))

    return logger
