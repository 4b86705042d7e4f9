"""Editable argument values and their command line serialization.

Each ArgumentDeclaration gets one ArgumentState holding what the user
entered. `to_tokens` turns it back into the exact tokens the parser
accepts; a parser reading those tokens must rebuild the same values.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from .constants import DELIMITER
from .models import (
    ArgumentDeclaration,
    Arity,
    EmptyValueError,
    RequiredArgumentError,
    SerializationError,
    ValidationErrorInfo,
)
from .settings import Localization

__all__ = [
    "ArgumentState",
    "FlagState",
    "MultiTextState",
    "OccurrencesState",
    "TextState",
    "ValueEntry",
    "encode_multiple",
    "encode_single",
    "next_entry_id",
]

_entry_ids = itertools.count(1)


def next_entry_id() -> int:
    """Return a new identifier for a value widget."""
    return next(_entry_ids)


def _option_value(token: str, value: str, equals: bool) -> list[str]:
    """Tokens giving `value` to the option `token`.

    Values starting with "-" would be read as options, they are attached.
    """
    if equals or value.startswith("-"):
        return [f"{token}={value}"]
    return [token, value]


def encode_single(declaration: ArgumentDeclaration, value: str) -> list[str]:
    """Return the tokens for one value of `declaration`."""
    if declaration.call_token is None:
        return [value]
    return _option_value(declaration.call_token, value, declaration.require_equals)


def encode_multiple(declaration: ArgumentDeclaration, values: list[str]) -> list[str]:
    """Return the tokens for several values of `declaration`.

    Raises:
        SerializationError: If the declared layout can't represent the values
    """
    spec = declaration.multiple
    if spec is None:
        msg = f"Argument '{declaration.name}' doesn't accept multiple values"
        raise SerializationError(msg)

    joined = DELIMITER.join(values)
    token = declaration.call_token
    if token is None:
        return [joined] if spec.require_delimiter else list(values)

    equals = declaration.require_equals
    if equals and spec.via_repeated_value and (spec.use_delimiter or len(values) == 1):
        return [f"{token}={joined}"]
    dashed = any(value.startswith("-") for value in values)
    if not equals and spec.via_repeated_value and spec.require_delimiter:
        return _option_value(token, joined, equals=False)
    if not equals and spec.via_repeated_value and (not dashed or len(values) == 1):
        return _option_value(token, values[0], equals=False) if dashed else [token, *values]
    if spec.via_repeated_occurrence:
        return list(itertools.chain.from_iterable(_option_value(token, value, equals) for value in values))
    if dashed:
        msg = f"Argument '{declaration.name}' can't pass several values when one starts with '-'"
        raise SerializationError(msg)

    msg = f"Argument '{declaration.name}' can't encode {len(values)} values with '=' and no delimiter"
    raise SerializationError(msg)


def _check_allowed(declaration: ArgumentDeclaration, value: str) -> None:
    if value and declaration.allowed_values and value not in declaration.allowed_values:
        msg = f"{value!r} is not one of {', '.join(declaration.allowed_values)}"
        raise ValueError(msg)


@dataclass
class ValueEntry:
    """One element of a multi-valued argument."""

    value: str = ""
    entry_id: int = field(default_factory=next_entry_id, compare=False)


@dataclass
class ArgumentState:
    """Current value of one argument."""

    declaration: ArgumentDeclaration
    _listeners: list[Callable[[ArgumentState], None]] = field(default_factory=list, init=False, compare=False, repr=False)

    @classmethod
    def from_declaration(cls, declaration: ArgumentDeclaration) -> ArgumentState:
        """Create the empty state matching the declared arity."""
        if declaration.arity is Arity.FLAG:
            return FlagState(declaration)
        if declaration.arity is Arity.OCCURRENCE:
            return OccurrencesState(declaration)
        if declaration.arity is Arity.MULTIPLE:
            return MultiTextState(declaration)
        return TextState(declaration)

    @property
    def name(self) -> str:
        """Declared argument name."""
        return self.declaration.name

    @property
    def display_name(self) -> str:
        """User facing name."""
        return self.declaration.display_name

    def subscribe(self, callback: Callable[[ArgumentState], None]) -> None:
        """Call `callback` after every change of the value."""
        self._listeners.append(callback)

    def _changed(self) -> None:
        for callback in self._listeners:
            callback(self)

    def error_message(self, info: ValidationErrorInfo | None) -> str | None:
        """Return the message of `info` if it targets this argument."""
        if info is not None and info.argument_name == self.display_name:
            return info.message
        return None

    def to_tokens(self, accumulator: list[str]) -> None:
        """Append the tokens for the current value to `accumulator`.

        Raises:
            ValidationError: If a required value is missing
            SerializationError: If the value can't be represented
        """
        raise NotImplementedError


@dataclass
class TextState(ArgumentState):
    """A single, free or choice-constrained, value."""

    _value: str = field(default="", init=False)
    entry_id: int = field(default_factory=next_entry_id, init=False, compare=False)

    @property
    def value(self) -> str:
        """The entered value, empty if none."""
        return self._value

    @value.setter
    def value(self, value: str) -> None:
        _check_allowed(self.declaration, value)
        self._value = value
        self._changed()

    @property
    def choices(self) -> tuple[str, ...]:
        """Allowed values, empty for free text."""
        return self.declaration.allowed_values

    def hint(self, localization: Localization | None = None) -> str:
        """Placeholder shown while the value is empty."""
        if self.declaration.default is not None:
            return self.declaration.default
        if self.declaration.required:
            return ""
        return (localization or Localization()).optional

    def to_tokens(self, accumulator: list[str]) -> None:
        declaration = self.declaration
        if self._value:
            accumulator.extend(encode_single(declaration, self._value))
        elif declaration.default is not None:
            accumulator.extend(encode_single(declaration, declaration.default))
        elif declaration.required:
            raise RequiredArgumentError(self.display_name)


@dataclass
class MultiTextState(ArgumentState):
    """An ordered list of values, duplicates allowed."""

    entries: list[ValueEntry] = field(default_factory=list, init=False)

    @property
    def values(self) -> list[str]:
        """The entered values, in order."""
        return [entry.value for entry in self.entries]

    @values.setter
    def values(self, values: Iterable[str]) -> None:
        values = list(values)
        for value in values:
            _check_allowed(self.declaration, value)
        self.entries = [ValueEntry(value) for value in values]
        self._changed()

    def _index(self, entry_id: int) -> int:
        for index, entry in enumerate(self.entries):
            if entry.entry_id == entry_id:
                return index
        raise KeyError(entry_id)

    def add(self, value: str = "") -> int:
        """Append a value, return its entry id."""
        _check_allowed(self.declaration, value)
        entry = ValueEntry(value)
        self.entries.append(entry)
        self._changed()
        return entry.entry_id

    def set(self, entry_id: int, value: str) -> None:
        """Replace the value of an entry.

        Raises:
            KeyError: If the entry doesn't exist
        """
        _check_allowed(self.declaration, value)
        self.entries[self._index(entry_id)].value = value
        self._changed()

    def remove(self, entry_id: int) -> None:
        """Drop an entry.

        Raises:
            KeyError: If the entry doesn't exist
        """
        del self.entries[self._index(entry_id)]
        self._changed()

    def reset(self) -> None:
        """Remove every entry."""
        self.entries = []
        self._changed()

    def reset_to_default(self) -> None:
        """Replace the entries with the declared defaults."""
        self.entries = [ValueEntry(value) for value in self.declaration.default_values]
        self._changed()

    def to_tokens(self, accumulator: list[str]) -> None:
        declaration = self.declaration
        values = self.values
        if not values:
            if declaration.required and not declaration.default_values:
                raise RequiredArgumentError(self.display_name)
            return
        if declaration.forbid_empty and "" in values:
            raise EmptyValueError(self.display_name)
        accumulator.extend(encode_multiple(declaration, values))


@dataclass
class OccurrencesState(ArgumentState):
    """A counter of value-less occurrences (eg: -vvv)."""

    _count: int = field(default=0, init=False)

    @property
    def count(self) -> int:
        """Number of occurrences."""
        return self._count

    @count.setter
    def count(self, count: int) -> None:
        if count < 0:
            msg = f"Occurrences can't be negative (got {count})"
            raise ValueError(msg)
        self._count = count
        self._changed()

    def increment(self) -> None:
        """Add one occurrence."""
        self.count = self._count + 1

    def decrement(self) -> None:
        """Remove one occurrence, stops at zero."""
        self.count = max(self._count - 1, 0)

    def to_tokens(self, accumulator: list[str]) -> None:
        if not self._count:
            return
        if self.declaration.call_token is None:
            msg = f"Argument '{self.name}' counts occurrences but has no call token"
            raise SerializationError(msg)
        accumulator.extend([self.declaration.call_token] * self._count)


@dataclass
class FlagState(ArgumentState):
    """A boolean switch."""

    _enabled: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self._enabled = self._on_by_default

    @property
    def _on_by_default(self) -> bool:
        return self.declaration.negation_token is not None and self.declaration.default == "true"

    @property
    def enabled(self) -> bool:
        """True if the switch is given."""
        return self._enabled

    @enabled.setter
    def enabled(self, enabled: bool) -> None:
        self._enabled = enabled
        self._changed()

    def toggle(self) -> None:
        """Flip the switch."""
        self.enabled = not self._enabled

    def to_tokens(self, accumulator: list[str]) -> None:
        if not self._enabled:
            if self._on_by_default:
                accumulator.append(self.declaration.negation_token)  # type: ignore[arg-type]
            return
        if self.declaration.call_token is None:
            msg = f"Argument '{self.name}' is a flag but has no call token"
            raise SerializationError(msg)
        accumulator.append(self.declaration.call_token)
