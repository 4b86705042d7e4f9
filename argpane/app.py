"""Entry point shared by the front-end and the worker."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

from .constants import WORKER_ENV_VAR
from .host import TerminalHost
from .logging_setup import get_logger, init_logger
from .models import ArgpaneError, ExitCode
from .session import Session
from .settings import Settings

if TYPE_CHECKING:
    import argparse
    from collections.abc import Callable, Sequence

__all__ = ["is_worker", "run_parser"]


def is_worker() -> bool:
    """Return True when running as the relaunched worker."""
    return bool(os.environ.get(WORKER_ENV_VAR))


def run_parser(
    parser: argparse.ArgumentParser,
    func: Callable[[argparse.Namespace], Any],
    settings: Settings | None = None,
    program: Sequence[str] | None = None,
) -> Any:
    """Run `func` with the parsed arguments, through the front-end.

    The first invocation shows the front-end; each run relaunches the
    same program with the chosen arguments, which then calls `func`.

    Usage:
        def main(args):
            ...

        if __name__ == "__main__":
            sys.exit(run_parser(parser, main))

    Args:
        parser: Declaration of the command line
        func: The program, called in the worker
        settings: Front-end settings, loaded from the configuration file if None
        program: Worker command, defaults to the running program

    Returns:
        The result of `func` in the worker, an ExitCode in the front-end
    """
    if is_worker():
        init_logger(worker=True)
        return func(parser.parse_args())

    init_logger(worker=False)
    log = get_logger("argpane")
    if settings is None:
        try:
            settings = Settings.load()
        except ArgpaneError:
            log.critical("Invalid settings, see above.")
            return ExitCode.USAGE_ERROR

    session = Session.from_parser(parser, settings, program)
    return TerminalHost(session).run()
