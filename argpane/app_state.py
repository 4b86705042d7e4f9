"""Command tree state: argument states per command plus the sub-command selection.

Nodes are stored in an arena keyed by their path (tuple of sub-command
names from the root), so any node can be reached directly, eg: to jump to
the argument named in a validation error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .arg_state import ArgumentState
from .logging_setup import get_logger
from .models import SerializationError, ValidationErrorInfo

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .models import CommandDescriptor

__all__ = ["CommandNode", "CommandPath", "CommandTree"]

CommandPath = tuple[str, ...]


@dataclass
class CommandNode:
    """Editable state of one command."""

    path: CommandPath
    name: str
    about: str | None = None
    arguments: list[ArgumentState] = field(default_factory=list)
    subcommands: list[str] = field(default_factory=list)  # sorted, for display
    selected_subcommand: str | None = None

    def argument(self, name: str) -> ArgumentState:
        """Return the state of the argument called `name`.

        Raises:
            KeyError: If the command has no such argument
        """
        for state in self.arguments:
            if name in {state.name, state.display_name}:
                return state
        raise KeyError(name)

    def to_tokens(self, accumulator: list[str]) -> None:
        """Append the tokens of this command's own arguments."""
        for state in self.arguments:
            state.to_tokens(accumulator)


class CommandTree:
    """Every command node of a program, built once from its descriptor."""

    def __init__(self, descriptor: CommandDescriptor) -> None:
        self.descriptor = descriptor
        self.nodes: dict[CommandPath, CommandNode] = {}
        self.validation_error: ValidationErrorInfo | None = None
        self.log = get_logger("argpane.state")
        self._add_node((), descriptor)

    def _add_node(self, path: CommandPath, descriptor: CommandDescriptor) -> None:
        node = CommandNode(
            path=path,
            name=descriptor.name,
            about=descriptor.about,
            arguments=[ArgumentState.from_declaration(decl) for decl in descriptor.arguments],
            subcommands=sorted(sub.name for sub in descriptor.subcommands),
            selected_subcommand=descriptor.subcommands[0].name if descriptor.subcommands else None,
        )
        for state in node.arguments:
            state.subscribe(self._on_argument_changed)
        self.nodes[path] = node
        for sub in descriptor.subcommands:
            self._add_node((*path, sub.name), sub)

    def _on_argument_changed(self, state: ArgumentState) -> None:
        if state.error_message(self.validation_error) is not None:
            self.log.debug("Clearing validation error of %s", state.display_name)
            self.validation_error = None

    @property
    def root(self) -> CommandNode:
        """The top level command."""
        return self.nodes[()]

    def node(self, path: CommandPath = ()) -> CommandNode:
        """Return the node at `path`.

        Raises:
            KeyError: If no such command exists
        """
        return self.nodes[tuple(path)]

    def select(self, path: CommandPath, name: str) -> None:
        """Select the sub-command `name` of the node at `path`.

        Raises:
            KeyError: If the node or the sub-command doesn't exist
        """
        node = self.node(path)
        if name not in node.subcommands:
            raise KeyError(name)
        node.selected_subcommand = name

    def active_path(self) -> list[CommandNode]:
        """Return the nodes from the root following the selected sub-commands."""
        nodes = [self.root]
        while nodes[-1].selected_subcommand is not None:
            current = nodes[-1]
            nodes.append(self.nodes[(*current.path, current.selected_subcommand)])
        return nodes

    def active_arguments(self) -> Iterator[tuple[CommandNode, ArgumentState]]:
        """Iterate over the arguments of every selected command."""
        for node in self.active_path():
            for state in node.arguments:
                yield node, state

    def find_argument(self, display_name: str) -> tuple[CommandPath, ArgumentState]:
        """Locate an argument of the active commands by display name.

        Raises:
            KeyError: If no active command has such an argument
        """
        for node, state in self.active_arguments():
            if state.display_name == display_name:
                return node.path, state
        raise KeyError(display_name)

    def set_error(self, info: ValidationErrorInfo | None) -> None:
        """Attach a validation error, replacing the previous one."""
        self.validation_error = info

    def clear_error(self) -> None:
        """Drop the validation error."""
        self.validation_error = None

    def error_for(self, state: ArgumentState) -> str | None:
        """Return the validation message attached to `state`, if any."""
        return state.error_message(self.validation_error)

    def to_tokens(self) -> list[str]:
        """Serialize the selected commands, program name excluded.

        Raises:
            ValidationError: If a required value is missing
            SerializationError: If a value can't be represented or no sub-command is selected
        """
        tokens: list[str] = []
        node = self.root
        while True:
            node.to_tokens(tokens)
            if node.selected_subcommand is None:
                if node.subcommands:
                    msg = f"No sub-command selected for '{node.name}'"
                    raise SerializationError(msg)
                return tokens
            tokens.append(node.selected_subcommand)
            node = self.nodes[(*node.path, node.selected_subcommand)]
