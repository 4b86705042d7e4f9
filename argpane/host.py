"""Terminal front-end: questionary prompts, then the worker's live output."""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING, Any, TextIO

import questionary
from questionary import Choice

from .ansi import REWRITE_PREVIOUS_LINE, OutputStyles, colorize, should_colorize
from .arg_state import FlagState, MultiTextState, OccurrencesState, TextState
from .logging_setup import get_logger
from .models import ExitCode, ValueHint
from .output import ProgressBarOutput, TextOutput
from .process import FileInput, TextInput

if TYPE_CHECKING:
    from .app_state import CommandNode
    from .arg_state import ArgumentState
    from .output import OutputSegment
    from .session import Session

__all__ = ["FormCancelled", "OutputPrinter", "TerminalHost"]

# Width of the progress gauges, in characters
GAUGE_WIDTH = 30


class FormCancelled(Exception):
    """The user aborted a prompt."""


def _answer(question: questionary.Question) -> Any:
    """Ask `question`, raise FormCancelled on Ctrl-C."""
    result = question.ask()
    if result is None:
        raise FormCancelled
    return result


def _is_count(text: str) -> bool | str:
    return (text.isascii() and text.isdigit()) or "Please enter a valid count."


class OutputPrinter:
    """Print decoded segments as they arrive.

    Progress bars are one-line gauges; the last printed one is redrawn in
    place when the stream is a terminal.
    """

    def __init__(self, stream: TextIO, width: int = GAUGE_WIDTH) -> None:
        self.stream = stream
        self.width = width
        self._printed = 0
        self._last_gauge: str | None = None
        self._line_start = True
        self._in_place = hasattr(stream, "isatty") and stream.isatty()
        self._colors = should_colorize(stream)

    def gauge(self, bar: ProgressBarOutput) -> str:
        """Return the one-line rendering of a progress bar."""
        filled = round(bar.value * self.width)
        body = "#" * filled + "-" * (self.width - filled)
        if self._colors:
            body = colorize(body, *OutputStyles.PROGRESS)
        return f"{bar.description} [{body}] {bar.value:4.0%}"

    def _write_gauge(self, line: str, rewrite: bool) -> None:
        if rewrite and self._in_place:
            self.stream.write(REWRITE_PREVIOUS_LINE)
        elif not self._line_start:
            self.stream.write("\n")
        self.stream.write(line + "\n")
        self._line_start = True
        self._last_gauge = line

    def render(self, segments: list[OutputSegment]) -> None:
        """Print what changed in `segments` since the previous call."""
        if 0 < self._printed <= len(segments):
            last = segments[self._printed - 1].payload
            if isinstance(last, ProgressBarOutput) and self.gauge(last) != self._last_gauge:
                self._write_gauge(self.gauge(last), rewrite=True)

        for segment in segments[self._printed :]:
            payload = segment.payload
            if isinstance(payload, TextOutput):
                self.stream.write(payload.text)
                self._line_start = payload.text.endswith("\n")
                self._last_gauge = None
            else:
                self._write_gauge(self.gauge(payload), rewrite=False)
        self._printed = len(segments)
        self.stream.flush()


class TerminalHost:
    """Edit the arguments with prompts, run the worker, repeat."""

    def __init__(self, session: Session, stream: TextIO | None = None) -> None:
        """Initialize.

        Args:
            session: The session to edit and run
            stream: Where the worker output is printed, stdout by default
        """
        self.session = session
        self.settings = session.settings
        self.loc = session.settings.localization
        self.stream = stream or sys.stdout
        self.log = get_logger("argpane.host")

    # Form

    def _message(self, state: ArgumentState) -> str:
        declaration = state.declaration
        text = state.display_name
        if declaration.help:
            text = f"{text}: {declaration.help}"
        return f"* {text}" if declaration.required else f"{text} {self.loc.optional}"

    def ask_argument(self, state: ArgumentState) -> None:
        """Prompt for the value of one argument.

        Raises:
            FormCancelled: If the user aborts
        """
        error = self.session.tree.error_for(state)
        if error:
            questionary.print(f"  {error}", style="fg:red")
        message = self._message(state)

        if isinstance(state, FlagState):
            state.enabled = bool(_answer(questionary.confirm(message, default=state.enabled)))
        elif isinstance(state, OccurrencesState):
            state.count = int(_answer(questionary.text(message, default=str(state.count), validate=_is_count)))
        elif isinstance(state, MultiTextState):
            self._ask_multiple(state, message)
        elif isinstance(state, TextState):
            self._ask_single(state, message)

    def _ask_single(self, state: TextState, message: str) -> None:
        declaration = state.declaration
        if state.choices:
            choices = [Choice(title=choice, value=choice) for choice in state.choices]
            if not declaration.required:
                choices.insert(0, Choice(title=self.loc.none, value=""))
            default = state.value if state.value in state.choices else declaration.default
            if default not in state.choices:
                default = None
            state.value = _answer(questionary.select(message, choices=choices, default=default))
        elif declaration.value_hint.is_path:
            only_dirs = declaration.value_hint is ValueHint.DIR_PATH
            state.value = _answer(questionary.path(message, default=state.value, only_directories=only_dirs))
        else:
            hint = state.hint(self.loc)
            if hint and hint != self.loc.optional:
                message = f"{message} [{hint}]"
            state.value = _answer(questionary.text(message, default=state.value))

    def _ask_multiple(self, state: MultiTextState, message: str) -> None:
        declaration = state.declaration
        if declaration.allowed_values:
            selected = set(state.values or declaration.default_values)
            choices = [Choice(title=value, value=value, checked=value in selected) for value in declaration.allowed_values]
            state.values = _answer(questionary.checkbox(message, choices=choices))
            return

        if state.values or declaration.default_values:
            questionary.print(f"{message}: {', '.join(state.values or declaration.default_values)}", style="bold")
            action = _answer(
                questionary.select(
                    message,
                    choices=[
                        Choice(title=self.loc.keep, value="keep"),
                        Choice(title=self.loc.new_value, value="new"),
                        Choice(title=self.loc.reset_to_default, value="default"),
                        Choice(title=self.loc.reset, value="reset"),
                    ],
                    default="keep",
                )
            )
            if action == "default":
                state.reset_to_default()
            elif action == "reset":
                state.reset()
            if action != "new":
                return
        else:
            questionary.print(f"{message}:", style="bold")

        questionary.print("  (Enter values one at a time, empty to finish)", style="fg:gray")
        state.reset()
        hint = declaration.value_hint
        while True:
            label = f"  {self.loc.new_value} {len(state.entries) + 1}:"
            if hint.is_path:
                value = _answer(questionary.path(label, default="", only_directories=hint is ValueHint.DIR_PATH))
            else:
                value = _answer(questionary.text(label, default=""))
            if not value:
                break
            state.add(value)

    def ask_command(self, node: CommandNode) -> CommandNode | None:
        """Prompt for every argument of `node`, then its sub-command.

        Returns:
            The selected sub-command node, None if `node` has none
        """
        questionary.print(f"\n── {node.name} ──", style="bold")
        if node.about:
            questionary.print(node.about, style="fg:gray")
        for state in node.arguments:
            self.ask_argument(state)
        if not node.subcommands:
            return None
        tree = self.session.tree
        name = _answer(
            questionary.select(
                self.loc.subcommand,
                choices=[Choice(title=sub, value=sub) for sub in node.subcommands],
                default=node.selected_subcommand,
            )
        )
        tree.select(node.path, name)
        return tree.node((*node.path, name))

    def ask_environment(self) -> None:
        """Prompt for environment overrides as NAME=VALUE rows."""
        questionary.print(f"\n── {self.loc.env_variables} ──", style="bold")
        if self.settings.enable_env:
            questionary.print(self.settings.enable_env, style="fg:gray")
        session = self.session
        if session.env:
            questionary.print("  " + ", ".join(f"{key}={value}" for key, value in session.env), style="fg:gray")
            if _answer(questionary.confirm(self.loc.keep, default=True)):
                return

        def validate(text: str) -> bool | str:
            return not text or bool(text.partition("=")[0]) or self.loc.error_env_var_cant_be_empty

        rows: list[tuple[str, str]] = []
        while row := _answer(questionary.text(f"  {self.loc.new_value} (NAME=VALUE):", validate=validate)):
            key, _, value = row.partition("=")
            rows.append((key, value))
        session.env = rows

    def ask_stdin(self) -> None:
        """Prompt for the worker's standard input."""
        questionary.print(f"\n── {self.loc.input} ──", style="bold")
        if self.settings.enable_stdin:
            questionary.print(self.settings.enable_stdin, style="fg:gray")
        current = self.session.stdin
        kind = _answer(
            questionary.select(
                self.loc.input,
                choices=[
                    Choice(title=self.loc.none, value="none"),
                    Choice(title=self.loc.text, value="text"),
                    Choice(title=self.loc.file, value="file"),
                ],
                default="text" if isinstance(current, TextInput) else "file" if isinstance(current, FileInput) else "none",
            )
        )
        if kind == "text":
            default = current.text if isinstance(current, TextInput) else ""
            self.session.stdin = TextInput(_answer(questionary.text(self.loc.text, default=default, multiline=True)))
        elif kind == "file":
            default = str(current.path) if isinstance(current, FileInput) else ""
            self.session.stdin = FileInput(_answer(questionary.path(self.loc.select_file, default=default)))
        else:
            self.session.stdin = None

    def ask_working_dir(self) -> None:
        """Prompt for the worker's working directory."""
        questionary.print(f"\n── {self.loc.working_directory} ──", style="bold")
        if self.settings.enable_working_dir:
            questionary.print(self.settings.enable_working_dir, style="fg:gray")
        self.session.working_dir = _answer(
            questionary.path(self.loc.select_directory, default=str(self.session.working_dir), only_directories=True)
        )

    def edit(self) -> None:
        """Walk the selected commands and the enabled run options.

        Raises:
            FormCancelled: If the user aborts
        """
        node: CommandNode | None = self.session.tree.root
        while node is not None:
            node = self.ask_command(node)
        if self.settings.enable_env is not None:
            self.ask_environment()
        if self.settings.enable_stdin is not None:
            self.ask_stdin()
        if self.settings.enable_working_dir is not None:
            self.ask_working_dir()

    # Run

    def _report_failure(self) -> ExitCode:
        session = self.session
        if session.run_error:
            questionary.print(session.run_error, style="fg:red bold")
            return ExitCode.RUN_ERROR
        if session.tree.validation_error is not None:
            questionary.print(str(session.tree.validation_error), style="fg:red bold")
        return ExitCode.USAGE_ERROR

    async def execute(self) -> ExitCode:
        """Launch the worker and print its output until it ends.

        The worker is killed on every exit path.
        """
        session = self.session
        try:
            if not await session.run() or session.child is None:
                return self._report_failure()
            child = session.child
            questionary.print(f"\n── {self.loc.running} ──", style="bold")
            printer = OutputPrinter(self.stream)
            while session.is_running:
                session.poll()
                printer.render(session.decoder.segments)
                await asyncio.sleep(self.settings.poll_interval)
            session.poll()
            printer.render(session.decoder.segments)
            returncode = await child.wait()
            questionary.print(f"Exit code: {returncode}", style="fg:green" if returncode == 0 else "fg:red")
            return ExitCode.SUCCESS
        finally:
            await session.close()

    def run(self) -> ExitCode:
        """Prompt and run until the user stops.

        Ctrl-C during a run kills the worker and goes back to the form.
        """
        root = self.session.tree.root
        questionary.print(f"\n{root.name}", style="bold fg:cyan")
        status = ExitCode.SUCCESS
        while True:
            try:
                self.edit()
            except FormCancelled:
                self.log.debug("Form cancelled")
                return ExitCode.CANCELLED
            try:
                status = asyncio.run(self.execute())
            except KeyboardInterrupt:
                questionary.print(f"{self.loc.kill} (Ctrl-C)", style="fg:yellow")
                status = ExitCode.CANCELLED
            if not questionary.confirm(self.loc.run_again, default=status != ExitCode.SUCCESS).ask():
                return status
