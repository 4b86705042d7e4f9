"""Build command descriptors from argparse parsers.

argparse keeps its declarations on private attributes; they are read here
once, the rest of argpane only depends on the CommandDescriptor tree.
"""

from __future__ import annotations

import argparse
import pathlib
from typing import Any

import shtab

from .constants import IMPLICIT_ARGUMENTS
from .logging_setup import get_logger
from .models import ArgumentDeclaration, Arity, CommandDescriptor, MultipleSpec, ValueHint

__all__ = ["describe_action", "describe_parser", "iter_subparsers"]

_SKIPPED_ACTIONS = (argparse._HelpAction, argparse._VersionAction)  # noqa: SLF001
_FLAG_ACTIONS = (
    argparse._StoreTrueAction,  # noqa: SLF001
    argparse._StoreFalseAction,  # noqa: SLF001
    argparse._StoreConstAction,  # noqa: SLF001
)
_OCCURRENCE_ACTIONS = (argparse._CountAction, argparse._AppendConstAction)  # noqa: SLF001
_SINGLE_NARGS = (None, argparse.OPTIONAL, 1)


def iter_subparsers(parser: argparse.ArgumentParser) -> list[tuple[str, argparse.ArgumentParser, str | None]]:
    """Return (name, parser, help) for each sub-command, in declaration order.

    Aliases point to the same parser object and are skipped.
    """
    result: list[tuple[str, argparse.ArgumentParser, str | None]] = []
    for action in parser._actions:  # noqa: SLF001
        if not isinstance(action, argparse._SubParsersAction):  # noqa: SLF001
            continue
        helps = {choice.dest: choice.help for choice in action._choices_actions}  # noqa: SLF001
        seen: set[int] = set()
        for name, subparser in action._name_parser_map.items():  # noqa: SLF001
            if id(subparser) in seen:
                continue
            seen.add(id(subparser))
            result.append((name, subparser, helps.get(name)))
    return result


def _value_hint(action: argparse.Action) -> ValueHint:
    """Guess the value hint from shtab completion hints or the value type."""
    complete = getattr(action, "complete", None)
    if complete == shtab.DIRECTORY:
        return ValueHint.DIR_PATH
    if complete == shtab.FILE:
        return ValueHint.FILE_PATH
    if isinstance(action.type, type) and issubclass(action.type, pathlib.PurePath):
        return ValueHint.ANY_PATH
    if isinstance(action.type, argparse.FileType):
        return ValueHint.FILE_PATH
    return ValueHint.NONE


def _defaults(action: argparse.Action) -> tuple[str, ...]:
    default: Any = action.default
    if default is None or default == argparse.SUPPRESS:
        return ()
    if isinstance(default, (list, tuple)):
        return tuple(str(value) for value in default)
    return (str(default),)


def _call_token(action: argparse.Action) -> str | None:
    if not action.option_strings:
        return None
    for option in action.option_strings:
        if option.startswith("--"):
            return option
    return action.option_strings[0]


def _takes_several(nargs: Any) -> bool:
    if isinstance(nargs, int):
        return nargs > 1
    return nargs in (argparse.ZERO_OR_MORE, argparse.ONE_OR_MORE)


def describe_action(action: argparse.Action) -> ArgumentDeclaration:
    """Convert one argparse action into an ArgumentDeclaration."""
    common: dict[str, Any] = {
        "name": action.dest,
        "call_token": _call_token(action),
        "help": action.help,
        "required": action.required,
    }

    if isinstance(action, argparse.BooleanOptionalAction):
        negation = next((option for option in action.option_strings if option.startswith("--no-")), None)
        defaults = ("true",) if action.default is True else ()
        return ArgumentDeclaration(**common, arity=Arity.FLAG, negation_token=negation, default_values=defaults)
    if isinstance(action, _FLAG_ACTIONS):
        return ArgumentDeclaration(**common, arity=Arity.FLAG)
    if isinstance(action, _OCCURRENCE_ACTIONS):
        return ArgumentDeclaration(**common, arity=Arity.OCCURRENCE)

    common["default_values"] = _defaults(action)
    common["allowed_values"] = tuple(str(choice) for choice in action.choices) if action.choices is not None else ()
    common["value_hint"] = _value_hint(action)

    if isinstance(action, argparse._ExtendAction):  # noqa: SLF001
        # Without nargs each occurrence takes one value
        multiple = MultipleSpec(via_repeated_occurrence=True, via_repeated_value=_takes_several(action.nargs))
        return ArgumentDeclaration(**common, arity=Arity.MULTIPLE, multiple=multiple)
    if isinstance(action, argparse._AppendAction):  # noqa: SLF001
        multiple = MultipleSpec(via_repeated_occurrence=True)
        return ArgumentDeclaration(**common, arity=Arity.MULTIPLE, multiple=multiple)
    if action.nargs in _SINGLE_NARGS:
        return ArgumentDeclaration(**common, arity=Arity.SINGLE)
    return ArgumentDeclaration(**common, arity=Arity.MULTIPLE, multiple=MultipleSpec(via_repeated_value=True))


def describe_parser(parser: argparse.ArgumentParser, name: str | None = None, about: str | None = None) -> CommandDescriptor:
    """Build the descriptor tree of an argparse parser.

    Args:
        parser: The root parser
        name: Command name (defaults to the parser's prog)
        about: Help text (defaults to the parser's description)

    Returns:
        The CommandDescriptor tree, implicit help/version arguments excluded
    """
    log = get_logger("argpane.descriptors")
    arguments: list[ArgumentDeclaration] = []
    for action in parser._actions:  # noqa: SLF001
        if isinstance(action, (*_SKIPPED_ACTIONS, argparse._SubParsersAction)):  # noqa: SLF001
            continue
        if action.dest in IMPLICIT_ARGUMENTS:
            continue
        if action.help == argparse.SUPPRESS:
            log.debug("Skipping hidden argument %s", action.dest)
            continue
        arguments.append(describe_action(action))

    subcommands = tuple(describe_parser(subparser, sub_name, subparser.description or sub_help) for sub_name, subparser, sub_help in iter_subparsers(parser))

    return CommandDescriptor(
        name=name or parser.prog,
        about=about if about is not None else parser.description,
        arguments=tuple(arguments),
        subcommands=subcommands,
    )
