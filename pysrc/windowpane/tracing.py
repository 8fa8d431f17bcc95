"""Logging configuration.

Every module in this package logs to a child of the `windowpane`
logger with the standard library {py:obj}`logging` module. Nothing is
configured on import; either configure logging in your application
as usual or call {py:obj}`setup_tracing` for a quick default.

"""

import logging
import os
from typing import Optional

__all__ = [
    "LOG_LEVEL_ENVVAR",
    "setup_tracing",
]

LOG_LEVEL_ENVVAR = "WINDOWPANE_LOG_LEVEL"
"""Environment variable consulted when no log level is given."""

_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(threadName)s %(name)s: %(message)s"


def setup_tracing(
    log_level: Optional[str] = None, fmt: str = _DEFAULT_FORMAT
) -> logging.Logger:
    """Send `windowpane` log records to stderr.

    Calling this more than once replaces the handler installed by the
    previous call rather than adding another.

    :arg log_level: One of `"ERROR"`, `"WARN"`, `"INFO"`, `"DEBUG"`,
        or `"TRACE"` (an alias for `"DEBUG"`). Defaults to the value
        of `WINDOWPANE_LOG_LEVEL`, else `"WARNING"`.

    :arg fmt: Log record format.

    :returns: The configured `windowpane` logger.

    """
    if log_level is None:
        log_level = os.environ.get(LOG_LEVEL_ENVVAR, "WARNING")
    level_name = log_level.upper()
    if level_name == "TRACE":
        level_name = "DEBUG"
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        msg = f"unknown log level {log_level!r}"
        raise ValueError(msg)

    logger = logging.getLogger("windowpane")
    for handler in list(logger.handlers):
        if getattr(handler, "_windowpane_tracing", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt))
    handler._windowpane_tracing = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
