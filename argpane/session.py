"""One front-end session: the edited command tree and the latest run."""

from __future__ import annotations

import argparse
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING, Self

from .app_state import CommandTree
from .descriptors import describe_parser
from .logging_setup import get_logger
from .models import LaunchError, SerializationError, StreamError, ValidationError
from .output import OutputDecoder
from .process import ChildProcess, StdinPayload
from .settings import Settings
from .validation import validate_tokens

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import CommandDescriptor

__all__ = ["Session"]


class Session:  # pylint: disable=too-many-instance-attributes
    """Owns the argument states, the run options and the active worker.

    Attributes:
        tree: Argument states of every command
        env: Environment overrides, as (name, value) rows
        stdin: Standard input of the next run
        working_dir: Working directory of the next run, inherited if empty
        child: Worker of the latest successful launch
        decoder: Decoded output of the latest run
        run_error: Why the latest run could not start, if it didn't
    """

    def __init__(
        self,
        descriptor: CommandDescriptor,
        parser: argparse.ArgumentParser | None = None,
        settings: Settings | None = None,
        program: Sequence[str] | None = None,
    ) -> None:
        """Initialize.

        Args:
            descriptor: Declaration of the program's commands
            parser: Parser used to check values before a run, if any
            settings: Front-end settings
            program: Worker command, defaults to the running program
        """
        self.tree = CommandTree(descriptor)
        self.parser = parser
        self.settings = settings or Settings()
        self.program = list(program) if program is not None else None
        self.env: list[tuple[str, str]] = []
        self.stdin: StdinPayload | None = None
        self.working_dir: str | Path = ""
        self.child: ChildProcess | None = None
        self.decoder = OutputDecoder()
        self.run_error: str | None = None
        self.log = get_logger("argpane.session")

    @classmethod
    def from_parser(
        cls,
        parser: argparse.ArgumentParser,
        settings: Settings | None = None,
        program: Sequence[str] | None = None,
    ) -> Session:
        """Create a session editing the arguments of `parser`."""
        return cls(describe_parser(parser), parser, settings, program)

    @property
    def is_running(self) -> bool:
        """True while the latest worker still has open output streams."""
        return self.child is not None and self.child.is_running

    async def run(self) -> bool:
        """Stop the previous worker, then launch one with the current values.

        Validation errors are attached to the tree, other failures are
        stored in `run_error`. Argument values are left untouched.

        Returns:
            True if a worker was launched
        """
        await self._close_child()
        self.run_error = None

        try:
            tokens = self.tree.to_tokens()
        except ValidationError as e:
            self.log.info("%s", e)
            self.tree.set_error(e.info)
            return False
        except SerializationError as e:
            self.log.error("Can't build the command line: %s", e)  # noqa: TRY400
            self.run_error = str(e)
            return False

        working_dir = self.working_dir if self.settings.enable_working_dir is not None else ""
        if self.parser is not None:
            info = validate_tokens(self.parser, tokens, working_dir)
            if info is not None:
                self.tree.set_error(info)
                return False
        self.tree.clear_error()

        self.decoder = OutputDecoder()
        if self.settings.enable_env is None:
            env = None
        else:
            env = self.env
        try:
            self.child = await ChildProcess.spawn(
                tokens,
                env=env,
                stdin=self.stdin if self.settings.enable_stdin is not None else None,
                working_dir=working_dir,
                program=self.program,
            )
        except (LaunchError, StreamError) as e:
            self.run_error = str(e)
            return False
        return True

    def poll(self) -> int:
        """Decode the output received since the last call.

        Returns:
            The number of segments added
        """
        if self.child is None:
            return 0
        before = len(self.decoder.segments)
        self.decoder.feed(self.child.read())
        return len(self.decoder.segments) - before

    def kill(self) -> None:
        """Kill the worker, its remaining output stays readable."""
        if self.child is not None:
            self.child.kill()

    async def _close_child(self) -> None:
        if self.child is not None:
            await self.child.close()
            self.child = None

    async def close(self) -> None:
        """Kill and reap the worker."""
        await self._close_child()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
