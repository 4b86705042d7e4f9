"""Shared constants for argpane."""

import os
from pathlib import Path

__all__ = [
    "CONFIG_ENV_VAR",
    "CONFIG_FILE",
    "DEFAULT_POLL_INTERVAL",
    "DEBUG_ENV_VAR",
    "DELIMITER",
    "IMPLICIT_ARGUMENTS",
    "MARKER",
    "PROGRESS_BAR_KIND",
    "READ_CHUNK_LIMIT",
    "STDIN_CHUNK_SIZE",
    "WORKER_ENV_VAR",
]

# Set in the relaunched process: parse argv and run the user's program directly
WORKER_ENV_VAR = "ARGPANE_WORKER"

# Verbose logs with logger names and source locations
DEBUG_ENV_VAR = "ARGPANE_DEBUG"

# Unicode non-character framing control records in worker stdout
MARKER = "\U0005fffe"

PROGRESS_BAR_KIND = "progress-bar"

# Separator for delimiter-encoded multiple values
DELIMITER = ","

# Arguments every parser declares on its own, never shown nor serialized
IMPLICIT_ARGUMENTS = frozenset({"help", "version"})

# Settings file: ARGPANE_CONFIG, then XDG_CONFIG_HOME with fallback to ~/.config
CONFIG_ENV_VAR = "ARGPANE_CONFIG"
_xdg_config_home = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
CONFIG_FILE = _xdg_config_home / "argpane" / "config.toml"

# Seconds between two output polls in the terminal host
DEFAULT_POLL_INTERVAL = 0.05

# Stream reader line limit (bytes), longer lines are forwarded in pieces
READ_CHUNK_LIMIT = 2**20

STDIN_CHUNK_SIZE = 2**16
