"""ANSI terminal color utilities.

Provides constants and helpers for terminal coloring with proper
NO_COLOR environment variable support and TTY detection, plus
stripping of styling sequences found in worker output.
"""

import os
import re
import sys
from typing import TextIO

__all__ = [
    "BOLD",
    "CYAN",
    "DIM",
    "GREEN",
    "RED",
    "RESET",
    "REWRITE_PREVIOUS_LINE",
    "YELLOW",
    "LogStyles",
    "OutputStyles",
    "colorize",
    "make_style",
    "should_colorize",
    "strip_ansi",
]

# ANSI escape sequence prefix
_ESC = "\x1b["

# Reset all attributes
RESET = f"{_ESC}0m"

# Move to the start of the previous line and erase it
REWRITE_PREVIOUS_LINE = f"{_ESC}1A\r{_ESC}2K"

# Style codes
BOLD = "1"
DIM = "2"

# Foreground color codes
RED = "31"
GREEN = "32"
YELLOW = "33"
CYAN = "36"

# CSI sequences (colors, cursor movement) and OSC sequences (hyperlinks, titles)
_ANSI_PATTERN = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")


def should_colorize(stream: TextIO | None = None) -> bool:
    """Determine if ANSI colors should be used for the given stream.

    Respects:
    - NO_COLOR environment variable (disables colors)
    - FORCE_COLOR environment variable (forces colors)
    - TTY detection (disables colors when piping)

    Args:
        stream: The output stream to check. Defaults to sys.stderr.

    Returns:
        True if colors should be used, False otherwise.
    """
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    if stream is None:
        stream = sys.stderr
    return hasattr(stream, "isatty") and stream.isatty()


def colorize(text: str, *codes: str) -> str:
    """Wrap text in ANSI color codes.

    Args:
        text: The text to colorize.
        *codes: ANSI codes to apply (e.g., RED, BOLD).

    Returns:
        The text wrapped in ANSI escape sequences.
    """
    if not codes:
        return text
    return f"{_ESC}{';'.join(codes)}m{text}{RESET}"


def make_style(*codes: str) -> tuple[str, str]:
    """Create a style prefix and suffix pair.

    Args:
        *codes: ANSI codes to apply.

    Returns:
        Tuple of (prefix, suffix) strings for use in formatters.
    """
    if not codes:
        return ("", RESET)
    return (f"{_ESC}{';'.join(codes)}m", RESET)


def strip_ansi(text: str) -> str:
    """Remove every ANSI escape sequence from text."""
    return _ANSI_PATTERN.sub("", text)


class LogStyles:
    """Pre-built styles for log levels."""

    WARNING = (YELLOW, DIM)
    ERROR = (RED, DIM)
    CRITICAL = (RED, BOLD)


class OutputStyles:
    """Pre-built styles for the terminal host."""

    PROGRESS = (GREEN,)
