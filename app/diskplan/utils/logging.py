"""Logging setup for the command line.

Library modules only create loggers; the handler is attached here, once,
by the CLI entry point. Records are rendered by Rich on stderr so they
never mix with reports printed to stdout.
"""

import logging
import os

from rich.logging import RichHandler

from diskplan.core.paths import LOG_LEVEL_ENV
from diskplan.utils.formatting import err_console

_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def level_for(verbosity: int, quiet: bool = False) -> int:
    """Map command-line verbosity to a log level.

    ``DISKPLAN_LOG`` takes precedence when set to a known level name.

    Args:
        verbosity: Number of ``-v`` flags given.
        quiet: True if ``--quiet`` was given.

    Returns:
        Logging level.
    """
    override = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    if override in _LEVEL_MAP:
        return _LEVEL_MAP[override]
    if quiet:
        return logging.ERROR
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def configure_logging(verbosity: int = 0, quiet: bool = False) -> int:
    """Attach a Rich handler to the root logger.

    Calling this again replaces the handler installed previously.

    Args:
        verbosity: Number of ``-v`` flags given.
        quiet: True if ``--quiet`` was given.

    Returns:
        The level that was configured.
    """
    level = level_for(verbosity, quiet)
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
            handler.close()

    handler = RichHandler(
        console=err_console,
        show_time=False,
        show_path=verbosity >= 2,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(level)
    return level
