"""Logging for the front-end and its workers.

Both sides log through named `argpane.*` loggers. A worker logs to its
stderr, which the front-end streams with the rest of the worker output,
so worker records carry a `[worker <pid>]` tag.
"""

import logging
import os
from dataclasses import dataclass, field

from .ansi import CYAN, LogStyles, colorize, make_style, should_colorize
from .constants import DEBUG_ENV_VAR, WORKER_ENV_VAR

__all__ = [
    "ScreenLogFormatter",
    "get_logger",
    "init_logger",
    "is_debug",
]


@dataclass
class _LogState:
    debug: bool = field(default_factory=lambda: bool(os.environ.get(DEBUG_ENV_VAR)))
    handlers: list[logging.Handler] = field(default_factory=list)


_state = _LogState()


def is_debug() -> bool:
    """Return True if verbose logging is enabled."""
    return _state.debug


class ScreenLogFormatter(logging.Formatter):
    """Terminal formatter, colored by level.

    Debug mode adds the logger name and source location.
    """

    _LEVEL_STYLES = {
        logging.WARNING: LogStyles.WARNING,
        logging.ERROR: LogStyles.ERROR,
        logging.CRITICAL: LogStyles.CRITICAL,
    }

    def __init__(self, worker: bool = False, colors: bool | None = None) -> None:
        """Initialize.

        Args:
            worker: Tag records with the worker process id
            colors: Force colors on or off, detected from stderr if None
        """
        super().__init__()
        use_colors = should_colorize() if colors is None else colors
        log_format = r"%(name)s - %(message)s // %(filename)s:%(lineno)d" if _state.debug else r"%(message)s"
        if worker:
            tag = "[worker %(process)d]"
            log_format = f"{colorize(tag, CYAN) if use_colors else tag} {log_format}"
        self._default = logging.Formatter(log_format)
        self._formatters: dict[int, logging.Formatter] = {}
        for level, style in self._LEVEL_STYLES.items():
            prefix, suffix = make_style(*style) if use_colors else ("", "")
            self._formatters[level] = logging.Formatter(prefix + log_format + suffix)

    def format(self, record: logging.LogRecord) -> str:
        return self._formatters.get(record.levelno, self._default).format(record)


def init_logger(filename: str | None = None, force_debug: bool = False, worker: bool | None = None) -> None:
    """Initialize the logging system.

    Args:
        filename: Optional filename to log to
        force_debug: If True, force debug level
        worker: Format for a worker process, detected from the environment if None
    """
    if force_debug:
        _state.debug = True
    if worker is None:
        worker = bool(os.environ.get(WORKER_ENV_VAR))

    _state.handlers.clear()
    if filename:
        file_handler = logging.FileHandler(filename)
        file_handler.setFormatter(logging.Formatter(fmt=r"%(asctime)s [%(levelname)s] %(process)d %(name)s :: %(message)s"))
        _state.handlers.append(file_handler)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(ScreenLogFormatter(worker))
    _state.handlers.append(stream_handler)


def get_logger(name: str = "argpane") -> logging.Logger:
    """Return a named logger, attached to the configured handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG if _state.debug else logging.WARNING)
    logger.propagate = False
    for handler in _state.handlers:
        if handler not in logger.handlers:
            logger.addHandler(handler)
    return logger
