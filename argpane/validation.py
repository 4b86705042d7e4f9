"""Check serialized tokens against the parser before launching the worker.

Value checks (choices, `type=` converters, custom validators) are made by
the parser itself; failures are turned into a ValidationErrorInfo keyed by
the display name of the offending argument.

Converters run in the host process, inside the worker's working directory.
`argparse.FileType` converters open files and are skipped; any other
converter failure is reported as a bad value, never raised.
"""

from __future__ import annotations

import argparse
import contextlib
import difflib
import re
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .descriptors import iter_subparsers
from .logging_setup import get_logger
from .models import ValidationErrorInfo, to_display_name

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

__all__ = ["validate_tokens"]

_REQUIRED_PREFIX = "the following arguments are required:"
_INVALID_CHOICE = re.compile(r"invalid choice: '?([^'\s]*)'?")
# Converters argparse already turns into clean errors
_PLAIN_TYPES: tuple[Any, ...] = (None, str, int, float, complex)


class _ParseFailure(Exception):
    """Raised instead of exiting when a parser reports an error."""

    def __init__(self, message: str, error: argparse.ArgumentError | None) -> None:
        super().__init__(message)
        self.message = message
        self.error = error


def _all_parsers(parser: argparse.ArgumentParser) -> list[argparse.ArgumentParser]:
    parsers = [parser]
    for _name, subparser, _help in iter_subparsers(parser):
        parsers.extend(_all_parsers(subparser))
    return parsers


def _action_names(action: argparse.Action) -> list[str]:
    """Names argparse may use for `action` in its messages."""
    names = []
    if action.option_strings:
        names.append("/".join(action.option_strings))
        names.extend(action.option_strings)
    if isinstance(action.metavar, str):
        names.append(action.metavar)
    names.append(action.dest)
    return names


def _fail(message: str) -> None:
    error = sys.exc_info()[1]
    raise _ParseFailure(message, error if isinstance(error, argparse.ArgumentError) else None)


def _guarded(convert: Callable[[str], Any]) -> Callable[[str], Any]:
    """Wrap a converter so unexpected exceptions become argument errors."""

    def guarded(text: str) -> Any:
        try:
            return convert(text)
        except (argparse.ArgumentTypeError, TypeError, ValueError):
            raise
        except Exception as e:  # noqa: BLE001
            msg = f"invalid value {text!r} ({type(e).__name__}: {e})"
            raise argparse.ArgumentTypeError(msg) from e

    guarded.__name__ = getattr(convert, "__name__", repr(convert))
    return guarded


@contextlib.contextmanager
def _checking(parsers: list[argparse.ArgumentParser]) -> Iterator[None]:
    """Make every parser raise _ParseFailure instead of exiting, with side effect free converters."""
    saved_errors = [parser.__dict__.get("error") for parser in parsers]
    saved_types: list[tuple[argparse.Action, Any, Any]] = []
    for parser in parsers:
        parser.error = _fail  # type: ignore[method-assign]
        for action in parser._actions:  # noqa: SLF001
            convert = action.type
            if convert in _PLAIN_TYPES or isinstance(action, argparse._SubParsersAction):  # noqa: SLF001
                continue
            saved_types.append((action, convert, action.choices))
            if isinstance(convert, argparse.FileType):
                # Raw strings can't be compared to converted choices
                action.type = None
                action.choices = None
            elif callable(convert):
                action.type = _guarded(convert)
    try:
        yield
    finally:
        for action, convert, choices in saved_types:
            action.type = convert
            action.choices = choices
        for parser, previous in zip(parsers, saved_errors, strict=True):
            if previous is None:
                del parser.error
            else:
                parser.error = previous  # type: ignore[method-assign]


def _suggestion(action: argparse.Action | None, message: str) -> str:
    if action is None or action.choices is None:
        return ""
    match = _INVALID_CHOICE.search(message)
    if not match:
        return ""
    close = difflib.get_close_matches(match.group(1), [str(choice) for choice in action.choices], n=1)
    return f" -> did you mean '{close[0]}'?" if close else ""


def validate_tokens(
    parser: argparse.ArgumentParser,
    tokens: Sequence[str],
    working_dir: str | Path | None = None,
) -> ValidationErrorInfo | None:
    """Parse `tokens` with `parser`, return the first error found.

    Args:
        parser: The parser the worker will use
        tokens: Command line arguments, program name excluded
        working_dir: Directory relative paths are checked against, the current one if empty

    Returns:
        None if the tokens are accepted, else the error of the offending argument
    """
    parsers = _all_parsers(parser)
    actions: dict[str, argparse.Action] = {}
    for sub in parsers:
        for action in sub._actions:  # noqa: SLF001
            for name in _action_names(action):
                actions.setdefault(name, action)

    directory: contextlib.AbstractContextManager[Any] = contextlib.nullcontext()
    if working_dir and Path(working_dir).expanduser().is_dir():
        directory = contextlib.chdir(Path(working_dir).expanduser())
    with directory, _checking(parsers):
        try:
            parser.parse_args(list(tokens))
        except _ParseFailure as failure:
            if failure.error is not None:
                name = failure.error.argument_name or ""
                message = failure.error.message
            else:
                name, message = "", failure.message
            if not name and message.startswith(_REQUIRED_PREFIX):
                name = message.removeprefix(_REQUIRED_PREFIX).split(",")[0].strip()
            action = actions.get(name)
            display_name = to_display_name(action.dest) if action is not None else name
            info = ValidationErrorInfo(display_name, message + _suggestion(action, message))
            get_logger("argpane.validation").info("%s", info)
            return info
    return None
