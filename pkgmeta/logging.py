"""Logging for metadata resolution.

Components log under the ``pkgmeta`` hierarchy: ``pkgmeta.project`` for
project evaluation, ``pkgmeta.attributes`` for assembly information discovery
and compilation, ``pkgmeta.context`` for the version source that won, and
``pkgmeta.tasks`` for task execution. Decisions are logged at DEBUG, so
``--verbose`` shows why a version or author was chosen.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "pkgmeta"
_CONSOLE_FORMAT = "[pkgmeta] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the logger for a resolution component, e.g. ``"context"``."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Route resolution logs to stderr and, when given, to ``log_file``.

    The file sink records the component logger name so precedence decisions
    can be traced back to the project reader, the attribute compiler or the
    metadata context.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Repeated CLI invocations in one process must not stack handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "get_logger"]
