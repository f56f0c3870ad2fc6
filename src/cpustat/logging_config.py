"""Logging setup for cpustat entry points."""

import logging
import sys

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
VERBOSE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(funcName)s | %(message)s"
)

ROOT_LOGGER = "cpustat"


def setup_logging(level: str | int = logging.WARNING, verbose: bool = False) -> logging.Logger:
    """
    Configure the ``cpustat`` logger with a single stderr handler.

    Library modules only create loggers; handlers are attached here, by the
    CLI or by an embedding application.

    Args:
        level: Minimum level, as a name ("INFO") or a number.
        verbose: Include line numbers and function names.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            VERBOSE_FORMAT if verbose else DEFAULT_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(handler)
    root_logger.propagate = False
    return root_logger
