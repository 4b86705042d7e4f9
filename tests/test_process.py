"""Tests for the worker process controller."""

import sys

import pytest
from testtools import python_program, read_all, wait_until

from argpane.models import InvalidEnvironmentError, LaunchError
from argpane.process import ChildProcess, FileInput, TextInput, current_program

UTF8 = {"PYTHONIOENCODING": "utf-8"}


class TestSpawn:
    """Launching the worker."""

    @pytest.mark.asyncio
    async def test_both_streams_are_read(self):
        code = "import sys; print('out'); print('err', file=sys.stderr)"
        async with await ChildProcess.spawn([], program=python_program(code)) as child:
            output = await read_all(child)
            assert await child.wait() == 0
        assert "out\n" in output
        assert "err\n" in output
        assert not child.is_running

    @pytest.mark.asyncio
    async def test_tokens_and_environment(self):
        code = "import os, sys; print(sys.argv[1:], os.environ['ARGPANE_WORKER'], os.environ['GREETING'])"
        async with await ChildProcess.spawn(
            ["--name", "with space"], env=[("GREETING", "hi")], program=python_program(code)
        ) as child:
            output = await read_all(child)
        assert output == "['--name', 'with space'] 1 hi\n"

    @pytest.mark.asyncio
    async def test_text_stdin(self):
        code = "import sys; print(sys.stdin.read().upper())"
        async with await ChildProcess.spawn([], env=UTF8, stdin=TextInput("héllo"), program=python_program(code)) as child:
            output = await read_all(child)
        assert output == "HÉLLO\n"

    @pytest.mark.asyncio
    async def test_file_stdin(self, tmp_path):
        source = tmp_path / "input.txt"
        source.write_text("line 1\nline 2\n" * 10000)
        code = "import sys; print(len(sys.stdin.read().splitlines()))"
        async with await ChildProcess.spawn([], stdin=FileInput(source), program=python_program(code)) as child:
            output = await read_all(child)
        assert output == "20000\n"

    @pytest.mark.asyncio
    async def test_no_stdin_gives_eof(self):
        code = "import sys; print(repr(sys.stdin.read()))"
        async with await ChildProcess.spawn([], program=python_program(code)) as child:
            output = await read_all(child)
        assert output == "''\n"

    @pytest.mark.asyncio
    async def test_output_is_streamed_while_running(self, monkeypatch):
        monkeypatch.delenv("PYTHONUNBUFFERED", raising=False)
        code = "import time; print('started'); time.sleep(30)"
        async with await ChildProcess.spawn([], program=python_program(code)) as child:
            chunks = []
            await wait_until(lambda: chunks.append(child.read()) or "started\n" in "".join(chunks))
            assert child.is_running

    @pytest.mark.asyncio
    async def test_unbuffered_can_be_overridden(self):
        code = "import os; print(os.environ['PYTHONUNBUFFERED'])"
        async with await ChildProcess.spawn([], env=[("PYTHONUNBUFFERED", "")], program=python_program(code)) as child:
            output = await read_all(child)
        assert output == "\n"

    @pytest.mark.asyncio
    async def test_working_dir(self, tmp_path):
        code = "import os; print(os.getcwd())"
        async with await ChildProcess.spawn([], env=UTF8, working_dir=tmp_path, program=python_program(code)) as child:
            output = await read_all(child)
        assert output.strip() == str(tmp_path.resolve())

    @pytest.mark.asyncio
    async def test_long_output_without_newline(self):
        code = "import sys; sys.stdout.write('x' * 3_000_000)"
        async with await ChildProcess.spawn([], program=python_program(code)) as child:
            output = await read_all(child, timeout=20)
        assert output == "x" * 3_000_000

    @pytest.mark.asyncio
    async def test_invalid_utf8_is_replaced(self):
        code = "import os; os.write(1, b'ok \\xff\\n')"
        async with await ChildProcess.spawn([], program=python_program(code)) as child:
            output = await read_all(child)
        assert output == "ok �\n"


class TestLaunchErrors:
    """Nothing is started when the launch options are wrong."""

    @pytest.mark.asyncio
    async def test_empty_environment_name(self):
        with pytest.raises(InvalidEnvironmentError, match="can't be empty"):
            await ChildProcess.spawn([], env={"": "value"}, program=python_program("pass"))

    @pytest.mark.asyncio
    async def test_missing_working_dir(self, tmp_path):
        with pytest.raises(LaunchError, match="working directory"):
            await ChildProcess.spawn([], working_dir=tmp_path / "missing", program=python_program("pass"))

    @pytest.mark.asyncio
    async def test_working_dir_is_a_file(self, tmp_path):
        path = tmp_path / "file"
        path.write_text("")
        with pytest.raises(LaunchError, match="not a directory"):
            await ChildProcess.spawn([], working_dir=path, program=python_program("pass"))

    @pytest.mark.asyncio
    async def test_missing_stdin_file(self, tmp_path):
        with pytest.raises(LaunchError, match="stdin file"):
            await ChildProcess.spawn([], stdin=FileInput(tmp_path / "missing"), program=python_program("pass"))

    @pytest.mark.asyncio
    async def test_missing_program(self, tmp_path):
        with pytest.raises(LaunchError, match="Internal io error"):
            await ChildProcess.spawn([], program=[str(tmp_path / "no-such-program")])


class TestRunningState:
    @pytest.mark.asyncio
    async def test_running_until_both_streams_close(self):
        code = "import os, time; os.write(1, b'out\\n'); os.close(1); time.sleep(1); os.write(2, b'err\\n'); os._exit(0)"
        async with await ChildProcess.spawn([], program=python_program(code)) as child:
            chunks = []

            def stdout_closed():
                chunks.append(child.read())
                return "stdout" not in child._open_streams

            await wait_until(stdout_closed)
            assert child.is_running
            assert "".join(chunks) == "out\n"

            assert await read_all(child) == "err\n"
            assert not child.is_running

    @pytest.mark.asyncio
    async def test_read_does_not_block(self):
        async with await ChildProcess.spawn([], program=python_program("import time; time.sleep(30)")) as child:
            assert child.read() == ""
            assert child.is_running


class TestKill:
    @pytest.mark.asyncio
    async def test_kill_is_idempotent(self):
        child = await ChildProcess.spawn([], program=python_program("import time; time.sleep(30)"))
        child.kill()
        child.kill()
        returncode = await child.wait()
        assert returncode < 0
        child.kill()
        await read_all(child)
        assert not child.is_running
        await child.close()

    @pytest.mark.asyncio
    async def test_kill_after_exit(self):
        child = await ChildProcess.spawn([], program=python_program("pass"))
        assert await child.wait() == 0
        child.kill()
        child.kill()
        await child.close()
        assert child.returncode == 0

    @pytest.mark.asyncio
    async def test_context_manager_kills(self):
        async with await ChildProcess.spawn([], program=python_program("import time; time.sleep(30)")) as child:
            assert child.returncode is None
        assert child.returncode is not None


class TestCurrentProgram:
    def test_script(self, monkeypatch):
        monkeypatch.setattr(sys, "orig_argv", ["python3", "app.py", "--x"])
        monkeypatch.setattr(sys, "argv", ["app.py", "--x"])
        assert current_program() == [sys.executable, "app.py"]

    def test_module(self, monkeypatch):
        monkeypatch.setattr(sys, "orig_argv", ["python3", "-m", "app", "--x"])
        monkeypatch.setattr(sys, "argv", ["/src/app/__main__.py", "--x"])
        assert current_program() == [sys.executable, "-m", "app"]

    def test_console_script(self, monkeypatch):
        monkeypatch.setattr(sys, "orig_argv", ["/usr/bin/python3", "/usr/bin/tool"])
        monkeypatch.setattr(sys, "argv", ["/usr/bin/tool"])
        assert current_program() == [sys.executable, "/usr/bin/tool"]
