"""
Logging configuration for the devbox CLI.

``setup_logging`` runs once, from the click group callback; modules
only ever do ``logger = logging.getLogger(__name__)``.

Console level, first match wins:
    --debug, --verbose, --quiet, DEVBOX_DEBUG, DEVBOX_LOG_LEVEL, WARNING

DEVBOX_LOG_FILE adds a file handler (level DEVBOX_LOG_FILE_LEVEL, or
the console level).
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

from devbox.core.config.featureflag import parse_bool

# At WARNING and above the console shows only the message, so
# warnings read like the rest of the CLI output.
_CONSOLE_FORMATS: list[tuple[int, str, str | None]] = [
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
]
_CONSOLE_DEFAULT = "%(message)s"

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def resolve_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the console log level from CLI flags and the environment."""
    env = os.environ if environ is None else environ
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    if parse_bool(env.get("DEVBOX_DEBUG")):
        return "DEBUG"
    return env.get("DEVBOX_LOG_LEVEL", "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root logger's handlers with devbox's.

    Args:
        level: Console level name; unknown names mean WARNING.
        log_file: Optional path to also log to.
        log_file_level: Level for ``log_file``, defaults to ``level``.
    """
    console_level = _parse_level(level)
    handlers = [_console_handler(console_level)]
    if log_file:
        file_level = _parse_level(log_file_level or level)
        handlers.append(_file_handler(log_file, file_level))

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
    for handler in handlers:
        root.addHandler(handler)
    # Let each handler filter; the root passes the most verbose level
    root.setLevel(min(h.level for h in handlers))

    logging.raiseExceptions = False


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = _CONSOLE_DEFAULT, None
    for threshold, candidate, candidate_datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            fmt, datefmt = candidate, candidate_datefmt
            break
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
    return handler


def _parse_level(name: str | None) -> int:
    """Level name to number; WARNING for empty or unknown names."""
    if not name:
        return logging.WARNING
    return logging.getLevelNamesMapping().get(name.upper(), logging.WARNING)
