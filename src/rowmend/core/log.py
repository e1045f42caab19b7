# log.py
# SPDX-License-Identifier: MIT
"""Package logger setup for rowmend.

The package logger gets a NullHandler at import time so library callers see
nothing until they opt in via :func:`configure_logging` (the CLI does this
from ``--log-level`` or the ``[logging]`` config table).
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from pathlib import Path

__all__ = [
    "PACKAGE_LOGGER_NAME",
    "DEFAULT_FORMAT",
    "get_logger",
    "configure_logging",
    "temp_level",
]

PACKAGE_LOGGER_NAME = "rowmend"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logging.getLogger(PACKAGE_LOGGER_NAME).addHandler(logging.NullHandler())


def _coerce_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.strip().upper(), logging.INFO)
    return int(level)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``name`` or the package logger when ``name`` is None."""
    return logging.getLogger(name or PACKAGE_LOGGER_NAME)


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream=None,
    fmt: str | None = None,
    datefmt: str | None = None,
    propagate: bool | None = None,
    log_file: str | Path | None = None,
    logger_name: str = PACKAGE_LOGGER_NAME,
) -> logging.Logger:
    """Attach handlers to a rowmend logger and set its level.

    Calling this repeatedly is safe: at most one stream handler (and one
    file handler per path) is installed, and stream handlers whose stream
    was closed (pytest capture, for instance) are pointed at the new stream.

    Args:
        level (int | str): Level or level name. Unknown names fall back to
            INFO.
        stream (IO[str] | None): Stream for console output; stderr when
            omitted.
        fmt (str | None): Format string; :data:`DEFAULT_FORMAT` when omitted.
        datefmt (str | None): Optional date format.
        propagate (bool | None): Whether records bubble up to the root
            logger. None keeps propagation on so host handlers still fire.
        log_file (str | Path | None): Optional path for an additional
            append-mode file handler.
        logger_name (str): Logger to configure.

    Returns:
        logging.Logger: The configured logger.
    """
    logger = get_logger(logger_name or PACKAGE_LOGGER_NAME)
    logger.setLevel(_coerce_level(level))
    logger.propagate = True if propagate is None else bool(propagate)

    stream = stream if stream is not None else sys.stderr
    formatter = logging.Formatter(fmt=fmt or DEFAULT_FORMAT, datefmt=datefmt)

    has_stream = False
    file_targets: set[str] = set()
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler):
            file_targets.add(handler.baseFilename)
            continue
        if isinstance(handler, logging.StreamHandler):
            has_stream = True
            if getattr(getattr(handler, "stream", None), "closed", False):
                handler.stream = stream
    if not has_stream:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if log_file is not None:
        target = Path(log_file).resolve()
        if str(target) not in file_targets:
            target.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(target, encoding="utf-8")
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger


@contextmanager
def temp_level(level: int | str, name: str | None = None):
    """Temporarily override a logger level; restores it on exit."""
    logger = get_logger(name)
    previous = logger.level
    logger.setLevel(_coerce_level(level))
    try:
        yield logger
    finally:
        logger.setLevel(previous)
