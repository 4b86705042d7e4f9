"""Argument descriptors and the error taxonomy.

Descriptors are the read-only view of a command line declaration:
a tree of CommandDescriptor nodes holding ArgumentDeclaration entries.
They are built once (by hand or from an argparse parser, see
`argpane.descriptors`) and never mutated afterwards.
"""

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum

__all__ = [
    "ArgpaneError",
    "ArgumentDeclaration",
    "Arity",
    "CommandDescriptor",
    "EmptyValueError",
    "ExitCode",
    "InvalidEnvironmentError",
    "LaunchError",
    "MultipleSpec",
    "RequiredArgumentError",
    "SerializationError",
    "StreamError",
    "ValidationError",
    "ValidationErrorInfo",
    "ValueHint",
    "to_display_name",
]


class ValueHint(StrEnum):
    """Kind of value an argument expects."""

    NONE = "none"
    ANY_PATH = "any_path"
    FILE_PATH = "file_path"
    DIR_PATH = "dir_path"

    @property
    def is_path(self) -> bool:
        """Return True for every path-valued hint."""
        return self is not ValueHint.NONE

    @property
    def allows_file(self) -> bool:
        """Return True if a file may be picked."""
        return self in {ValueHint.ANY_PATH, ValueHint.FILE_PATH}

    @property
    def allows_dir(self) -> bool:
        """Return True if a directory may be picked."""
        return self in {ValueHint.ANY_PATH, ValueHint.DIR_PATH}


class Arity(StrEnum):
    """Declared cardinality of an argument."""

    SINGLE = "single"
    OCCURRENCE = "occurrence"
    FLAG = "flag"
    MULTIPLE = "multiple"


@dataclass(frozen=True)
class MultipleSpec:
    """How several values of one argument are laid out on the command line.

    Attributes:
        via_repeated_occurrence: the call token is repeated before each value
        via_repeated_value: the call token is given once, followed by the values
        use_delimiter: values may be packed in one comma separated token
        require_delimiter: values must be packed in one comma separated token
    """

    via_repeated_occurrence: bool = False
    via_repeated_value: bool = False
    use_delimiter: bool = False
    require_delimiter: bool = False


def to_display_name(name: str) -> str:
    """Return the sentence-cased, user facing version of an argument name.

    Eg: "input_file" -> "Input file", "--dry-run" -> "Dry run"
    """
    words = name.strip("-").replace("-", " ").replace("_", " ").split()
    if not words:
        return name
    sentence = " ".join(word.lower() for word in words)
    return sentence[0].upper() + sentence[1:]


@dataclass(frozen=True)
class ArgumentDeclaration:  # pylint: disable=too-many-instance-attributes
    """Read-only declaration of one argument.

    A call token given with a trailing "=" (eg: "--path=") is stored bare
    and turns `require_equals` on.

    A flag with a `negation_token` (eg: "--no-color") and the "true" default
    starts enabled; disabling it emits the negation token.
    """

    name: str
    call_token: str | None = None
    help: str | None = None
    required: bool = False
    forbid_empty: bool = False
    default_values: tuple[str, ...] = ()
    allowed_values: tuple[str, ...] = ()
    value_hint: ValueHint = ValueHint.NONE
    arity: Arity = Arity.SINGLE
    multiple: MultipleSpec | None = None
    require_equals: bool = False
    negation_token: str | None = None

    def __post_init__(self) -> None:
        if self.call_token is not None and self.call_token.endswith("=") and len(self.call_token) > 1:
            object.__setattr__(self, "call_token", self.call_token[:-1])
            object.__setattr__(self, "require_equals", True)
        object.__setattr__(self, "default_values", tuple(self.default_values))
        object.__setattr__(self, "allowed_values", tuple(self.allowed_values))
        if self.arity is Arity.MULTIPLE and self.multiple is None:
            msg = f"Argument {self.name!r} has multiple arity but no MultipleSpec"
            raise ValueError(msg)
        if self.arity is not Arity.MULTIPLE and self.multiple is not None:
            msg = f"Argument {self.name!r} has a MultipleSpec but {self.arity} arity"
            raise ValueError(msg)
        if self.arity is not Arity.FLAG and self.negation_token is not None:
            msg = f"Argument {self.name!r} has a negation token but {self.arity} arity"
            raise ValueError(msg)

    @property
    def display_name(self) -> str:
        """User facing name, used to key validation errors."""
        return to_display_name(self.name)

    @property
    def is_positional(self) -> bool:
        """Return True if the argument has no call token."""
        return self.call_token is None

    @property
    def default(self) -> str | None:
        """Return the first default value, if any."""
        return self.default_values[0] if self.default_values else None


@dataclass(frozen=True)
class CommandDescriptor:
    """Read-only declaration of a command and its sub-commands."""

    name: str
    about: str | None = None
    arguments: tuple[ArgumentDeclaration, ...] = ()
    subcommands: tuple["CommandDescriptor", ...] = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "arguments", tuple(self.arguments))
        object.__setattr__(self, "subcommands", tuple(self.subcommands))

    def subcommand(self, name: str) -> "CommandDescriptor":
        """Return the sub-command called `name`.

        Raises:
            KeyError: If there is no such sub-command
        """
        for sub in self.subcommands:
            if sub.name == name:
                return sub
        raise KeyError(name)


@dataclass(frozen=True)
class ValidationErrorInfo:
    """A validation failure attached to one argument, by display name."""

    argument_name: str
    message: str

    def __str__(self) -> str:
        return f"Validation error in {self.argument_name}: '{self.message}'"


class ArgpaneError(Exception):
    """Base class for every error raised by argpane."""


class ValidationError(ArgpaneError):
    """An argument has no usable value. Resolved by a user edit."""

    def __init__(self, argument_name: str, message: str) -> None:
        super().__init__(f"Validation error in {argument_name}: '{message}'")
        self.argument_name = argument_name
        self.message = message

    @property
    def info(self) -> ValidationErrorInfo:
        """Return the error as a ValidationErrorInfo."""
        return ValidationErrorInfo(self.argument_name, self.message)


class RequiredArgumentError(ValidationError):
    """A required argument is empty and has no default."""

    def __init__(self, argument_name: str) -> None:
        super().__init__(argument_name, f"Argument '{argument_name}' is required")


class EmptyValueError(ValidationError):
    """An argument forbidding empty values received one."""

    def __init__(self, argument_name: str) -> None:
        super().__init__(argument_name, f"Argument '{argument_name}' can't be empty")


class SerializationError(ArgpaneError):
    """The declaration describes an encoding that tokens can't represent."""


class LaunchError(ArgpaneError):
    """The worker process could not be started."""


class InvalidEnvironmentError(LaunchError):
    """An environment override has an empty name."""


class StreamError(ArgpaneError):
    """A pipe handle of the worker process is unavailable."""


class ExitCode(IntEnum):
    """Exit codes of the terminal host."""

    SUCCESS = 0
    USAGE_ERROR = 1  # Invalid settings or declaration
    CANCELLED = 2  # User aborted the form
    RUN_ERROR = 3  # Worker could not be launched
