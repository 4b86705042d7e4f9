"""Front-end settings and their TOML configuration file.

Example configuration::

    [argpane]
    enable_env = "Extra variables for the worker"
    enable_stdin = ""
    poll_interval = 0.1

    [argpane.localization]
    run = "Go!"
"""

from __future__ import annotations

import difflib
import os
import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .constants import CONFIG_ENV_VAR, CONFIG_FILE, DEFAULT_POLL_INTERVAL
from .logging_setup import get_logger
from .models import ArgpaneError

if TYPE_CHECKING:
    import logging

__all__ = ["Localization", "Settings"]


@dataclass(frozen=True)
class Localization:  # pylint: disable=too-many-instance-attributes
    """Builtin strings of the front-end, english by default."""

    optional: str = "(Optional)"
    select_file: str = "Select file..."
    select_directory: str = "Select directory..."
    new_value: str = "New value"
    reset: str = "Reset"
    reset_to_default: str = "Reset to default"
    arguments: str = "Arguments"
    env_variables: str = "Environment variables"
    error_env_var_cant_be_empty: str = "Environment variable can't be empty"
    input: str = "Input"
    text: str = "Text"
    file: str = "File"
    working_directory: str = "Working directory"
    subcommand: str = "Sub-command"
    none: str = "None"
    keep: str = "Keep current values"
    run_again: str = "Run again?"
    run: str = "Run"
    kill: str = "Kill"
    running: str = "Running"


@dataclass(frozen=True)
class Settings:
    """Settings of the front-end.

    Attributes:
        enable_env: None to disable environment overrides, else their description
        enable_stdin: None to disable standard input, else its description
        enable_working_dir: None to disable the working directory, else its description
        poll_interval: Seconds between two output reads
        localization: Builtin strings
    """

    enable_env: str | None = None
    enable_stdin: str | None = None
    enable_working_dir: str | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    localization: Localization = field(default_factory=Localization)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """Build settings from the `[argpane]` table of a configuration.

        Unknown keys are reported and ignored.

        Raises:
            ArgpaneError: If a value has the wrong type
        """
        log = get_logger("argpane.settings")
        data = dict(data)
        loc_data = data.pop("localization", {})
        known = {f.name for f in fields(cls)} - {"localization"}
        _warn_unknown(log, data, known, "argpane")
        _warn_unknown(log, loc_data, {f.name for f in fields(Localization)}, "argpane.localization")

        values: dict[str, Any] = {}
        for name in known & data.keys():
            value = data[name]
            if name == "poll_interval":
                if not isinstance(value, (int, float)) or value <= 0:
                    msg = f"[argpane] poll_interval must be a positive number, got {value!r}"
                    raise ArgpaneError(msg)
                values[name] = float(value)
            elif value is not None and not isinstance(value, str):
                msg = f"[argpane] {name} must be a string, got {value!r}"
                raise ArgpaneError(msg)
            else:
                values[name] = value

        localization = replace(Localization(), **{k: str(v) for k, v in loc_data.items() if hasattr(Localization, k)})
        return cls(localization=localization, **values)

    @classmethod
    def load(cls, path: Path | str | None = None) -> Settings:
        """Load settings from a TOML file.

        Without `path`, ARGPANE_CONFIG then the default location are tried;
        a missing default file yields default settings.

        Raises:
            ArgpaneError: If an explicit file is missing or invalid
        """
        log = get_logger("argpane.settings")
        explicit = path is not None or bool(os.environ.get(CONFIG_ENV_VAR))
        fname = Path(os.path.expandvars(str(path or os.environ.get(CONFIG_ENV_VAR) or CONFIG_FILE))).expanduser()

        if not fname.exists():
            if explicit:
                log.critical("Config file not found: %s", fname)
                msg = f"Config file not found: {fname}"
                raise ArgpaneError(msg)
            return cls()

        log.info("Loading %s", fname)
        with fname.open("rb") as f:
            try:
                config = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                log.critical("Problem reading %s: %s", fname, e)
                msg = f"Problem reading {fname}: {e}"
                raise ArgpaneError(msg) from e
        return cls.from_dict(config.get("argpane", {}))


def _warn_unknown(log: logging.Logger, data: dict[str, Any], known: set[str], section: str) -> None:
    for key in data.keys() - known:
        matches = difflib.get_close_matches(key, sorted(known), n=1)
        if matches:
            log.warning("[%s] Unknown option '%s' -> did you mean '%s'?", section, key, matches[0])
        else:
            log.warning("[%s] Unknown option '%s'", section, key)
