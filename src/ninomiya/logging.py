"""
Logging setup for ninomiya.

All modules log through structlog:

    logger = structlog.get_logger(__name__)
    logger.info("notification_shown", id=7)

configure_logging() sets the threshold once per process. Levels follow the
NINOMIYA_LOG variable: error, warn, info, debug, trace. Without it the
daemon only reports warnings and errors. trace is debug plus the debug
output of the D-Bus library.
"""

import logging
import sys
from typing import Any

import structlog

__all__ = ["LEVELS", "configure_logging", "parse_level"]

DEFAULT_LEVEL = "warn"

LEVELS = ("error", "warn", "info", "debug", "trace")

_NUMERIC = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}


def parse_level(name: str | None) -> str | None:
    """Normalize a level name.

    Returns:
        The canonical name, the default for None/empty, or None if unrecognized
    """
    if not name:
        return DEFAULT_LEVEL
    name = name.strip().lower()
    if name == "warning":
        return "warn"
    return name if name in _NUMERIC else None


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    # Looked up per logger so a replaced sys.stderr is honoured
    return structlog.PrintLogger(sys.stderr)


def configure_logging(level: str | None = None) -> str:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Level name (falls back to warn if missing or unrecognized)

    Returns:
        The canonical level name in effect
    """
    name = parse_level(level)
    unrecognized = name is None
    if name is None:
        name = DEFAULT_LEVEL
    numeric = _NUMERIC[name]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )

    # dbus_next logs through the stdlib; its debug output is trace-only
    logging.basicConfig(
        stream=sys.stderr,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    library_level = numeric if name == "trace" else max(numeric, logging.INFO)
    logging.getLogger().setLevel(library_level)

    if unrecognized:
        structlog.get_logger(__name__).warning("unknown_log_level", value=level, using=DEFAULT_LEVEL)

    return name
