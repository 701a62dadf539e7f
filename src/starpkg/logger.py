"""Logging setup for the command line.

Library modules only ever call logging.getLogger(__name__); this module
decides where those records go when starpkg runs as a program.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

# Below DEBUG: block classification, full package dumps, error cause chains
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

ROOT_LOGGER = "starpkg"

_LEVELS = {
    0: logging.INFO,
    1: logging.DEBUG,
}


def level_for(verbosity: int) -> int:
    """Map a -v count to a logging level."""
    return _LEVELS.get(verbosity, TRACE)


def init(verbosity: int = 0) -> logging.Logger:
    """Route starpkg log records to stderr through rich.

    Args:
        verbosity: Number of -v flags (0: info, 1: debug, 2+: trace)

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=verbosity > 0,
        markup=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger.addHandler(handler)
    logger.setLevel(level_for(verbosity))

    if verbosity > 2:
        logger.warning("superfluous verbosity (-vv is max)")

    return logger
