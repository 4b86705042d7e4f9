"""Worker process lifecycle and non-blocking output streaming.

ChildProcess:
    Relaunches the running program as a worker (ARGPANE_WORKER set),
    feeds its standard input, and drains stdout/stderr from two reader
    tasks into queues that the owner polls with `read()`.
"""

__all__ = ["ChildProcess", "FileInput", "StdinPayload", "TextInput", "current_program"]

import asyncio
import codecs
import contextlib
import os
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Self

import aiofiles

from .constants import READ_CHUNK_LIMIT, STDIN_CHUNK_SIZE, WORKER_ENV_VAR
from .logging_setup import get_logger
from .models import InvalidEnvironmentError, LaunchError, StreamError


@dataclass(frozen=True)
class TextInput:
    """Literal text written to the worker's stdin."""

    text: str


@dataclass(frozen=True)
class FileInput:
    """File whose content is streamed to the worker's stdin."""

    path: Path | str


StdinPayload = TextInput | FileInput


def current_program() -> list[str]:
    """Return the command relaunching the running program, arguments excluded.

    Covers scripts (`python app.py`), modules (`python -m app`) and
    installed console scripts.
    """
    argv = sys.argv
    orig_argv = getattr(sys, "orig_argv", None) or [sys.executable, *argv]
    prefix = orig_argv[: len(orig_argv) - len(argv) + 1]
    if not prefix:
        return [sys.executable, *argv[:1]]
    return [sys.executable, *prefix[1:]]


def _resolve_working_dir(working_dir: str | Path) -> Path | None:
    if not str(working_dir):
        return None
    try:
        path = Path(working_dir).expanduser().resolve(strict=True)
    except (OSError, RuntimeError) as e:
        msg = f"Can't resolve working directory {working_dir}: {e}"
        raise LaunchError(msg) from e
    if not path.is_dir():
        msg = f"Working directory {path} is not a directory"
        raise LaunchError(msg)
    return path


def _build_environment(overrides: Mapping[str, str] | Sequence[tuple[str, str]] | None) -> dict[str, str]:
    pairs = list(overrides.items()) if isinstance(overrides, Mapping) else list(overrides or [])
    for key, _ in pairs:
        if not key:
            msg = "Environment variable can't be empty"
            raise InvalidEnvironmentError(msg)
    env = dict(os.environ)
    # Python workers flush each write, so output streams while they run
    env.setdefault("PYTHONUNBUFFERED", "1")
    env.update(pairs)
    env[WORKER_ENV_VAR] = "1"
    return env


class ChildProcess:
    """A running worker process and the output read from it so far.

    Usage:
        async with await ChildProcess.spawn(["--verbose", "run"]) as child:
            while child.is_running:
                text = child.read()
                ...
                await asyncio.sleep(0.05)
    """

    def __init__(self, proc: asyncio.subprocess.Process) -> None:
        """Initialize.

        Args:
            proc: The spawned process, stdout and stderr piped
        """
        if proc.stdout is None or proc.stderr is None:
            msg = "Internal error: no child stdout or stderr"
            raise StreamError(msg)
        self._proc = proc
        self.log = get_logger("argpane.process")
        self._queues: dict[str, asyncio.Queue[str | None]] = {"stdout": asyncio.Queue(), "stderr": asyncio.Queue()}
        self._open_streams = set(self._queues)
        self._tasks: list[asyncio.Task[None]] = [
            asyncio.create_task(self._pump(proc.stdout, self._queues["stdout"]), name="argpane-stdout"),
            asyncio.create_task(self._pump(proc.stderr, self._queues["stderr"]), name="argpane-stderr"),
        ]

    @classmethod
    async def spawn(  # noqa: PLR0913
        cls,
        tokens: Sequence[str],
        env: Mapping[str, str] | Sequence[tuple[str, str]] | None = None,
        stdin: StdinPayload | None = None,
        working_dir: str | Path = "",
        program: Sequence[str] | None = None,
    ) -> Self:
        """Launch the worker.

        Args:
            tokens: Command line arguments, program name excluded
            env: Environment overrides (empty names are rejected)
            stdin: Content for the standard input, nothing is written if None
            working_dir: Working directory, inherited if empty
            program: Command to run, defaults to the running program

        Raises:
            InvalidEnvironmentError: If an override has an empty name
            LaunchError: If the directory, stdin file or program can't be used
            StreamError: If a pipe is missing
        """
        log = get_logger("argpane.process")
        environment = _build_environment(env)
        cwd = _resolve_working_dir(working_dir)
        if isinstance(stdin, FileInput) and not Path(stdin.path).is_file():
            msg = f"Can't read stdin file {stdin.path}"
            raise LaunchError(msg)

        command = [*(program or current_program()), *tokens]
        log.info("Launching %s", command)
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=environment,
                cwd=cwd,
                limit=READ_CHUNK_LIMIT,
            )
        except OSError as e:
            log.exception("Unable to launch %s", command[0])
            msg = f"Internal io error: {e}"
            raise LaunchError(msg) from e

        try:
            child = cls(proc)
        except StreamError:
            proc.kill()
            raise
        child._tasks.append(asyncio.create_task(child._feed_stdin(stdin), name="argpane-stdin"))
        return child

    async def _feed_stdin(self, payload: StdinPayload | None) -> None:
        """Write the payload to stdin, then close it."""
        stdin = self._proc.stdin
        if stdin is None:
            return
        try:
            if isinstance(payload, TextInput):
                stdin.write(payload.text.encode("utf-8"))
                await stdin.drain()
            elif isinstance(payload, FileInput):
                async with aiofiles.open(payload.path, "rb") as f:
                    while chunk := await f.read(STDIN_CHUNK_SIZE):
                        stdin.write(chunk)
                        await stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            self.log.info("Worker closed its standard input early")
        finally:
            stdin.close()

    async def _pump(self, stream: asyncio.StreamReader, queue: asyncio.Queue[str | None]) -> None:
        """Forward newline terminated chunks of `stream`, then None."""
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            try:
                data = await stream.readuntil(b"\n")
            except asyncio.IncompleteReadError as e:
                data = e.partial
            except asyncio.LimitOverrunError as e:
                data = await stream.readexactly(e.consumed)
            if not data:
                break
            queue.put_nowait(decoder.decode(data))
        tail = decoder.decode(b"", final=True)
        if tail:
            queue.put_nowait(tail)
        queue.put_nowait(None)

    @property
    def pid(self) -> int:
        """Process id of the worker."""
        return self._proc.pid

    @property
    def returncode(self) -> int | None:
        """Exit code if the worker exited, else None."""
        return self._proc.returncode

    @property
    def is_running(self) -> bool:
        """True until the end of both stdout and stderr has been read."""
        return bool(self._open_streams)

    def read(self) -> str:
        """Return the output received since the last call, without blocking.

        Order is kept within each stream, not across them.
        """
        chunks: list[str] = []
        for name, queue in self._queues.items():
            if name not in self._open_streams:
                continue
            while True:
                try:
                    chunk = queue.get_nowait()
                except asyncio.QueueEmpty:
                    break
                if chunk is None:
                    self.log.debug("Worker %s closed its %s", self.pid, name)
                    self._open_streams.discard(name)
                    break
                chunks.append(chunk)
        return "".join(chunks)

    def kill(self) -> None:
        """Terminate the worker immediately. Safe to call at any time."""
        if self._proc.returncode is not None:
            return
        with contextlib.suppress(ProcessLookupError):
            self._proc.kill()
            self.log.info("Killed worker %s", self.pid)

    async def wait(self) -> int:
        """Wait for the worker to exit and return its exit code."""
        return await self._proc.wait()

    async def close(self) -> None:
        """Kill the worker, reap it and stop the reader tasks."""
        self.kill()
        await self._proc.wait()
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    def __del__(self) -> None:
        proc = getattr(self, "_proc", None)
        if proc is not None and proc.returncode is None:
            with contextlib.suppress(ProcessLookupError, RuntimeError):
                proc.kill()
