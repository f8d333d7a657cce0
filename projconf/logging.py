"""Console and file logging for projconf runs."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_LOGGER_NAME = "projconf"
_HANDLER_MARK = "_projconf_handler"


class _ComponentFormatter(logging.Formatter):
    """Adds ``%(component)s``: the logger name below the projconf root."""

    def format(self, record: logging.LogRecord) -> str:
        name = record.name
        if name.startswith(f"{_LOGGER_NAME}."):
            name = name[len(_LOGGER_NAME) + 1 :]
        record.component = name
        return super().format(record)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a component logger, e.g. ``projconf.collector``."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def _level(verbose: bool, quiet: bool) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def configure_logging(
    *, verbose: bool = False, quiet: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Route projconf records to stderr and, optionally, to ``log_file``.

    ``verbose`` wins over ``quiet``. Verbose console lines name the component
    that emitted them. Handlers installed by an earlier call are replaced.
    """
    level = _level(verbose, quiet)
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            logger.removeHandler(handler)
            handler.close()

    console_format = (
        "[projconf:%(component)s] %(levelname)s %(message)s"
        if verbose
        else "[projconf] %(levelname)s %(message)s"
    )
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(_ComponentFormatter(console_format))
    setattr(console, _HANDLER_MARK, True)
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        # The file always keeps debug detail regardless of console verbosity.
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            _ComponentFormatter("%(asctime)s %(levelname)s %(component)s: %(message)s")
        )
        setattr(file_handler, _HANDLER_MARK, True)
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)

    return logger


__all__ = ["configure_logging", "get_logger"]
