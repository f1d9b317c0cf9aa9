"""Tests for pipelines, output capture and output variables."""

import asyncio
import os
import shutil
import signal
import time

import pytest
from shmy import Shell

needs_tr = pytest.mark.skipif(shutil.which("tr") is None, reason="tr not available")
needs_sh = pytest.mark.skipif(shutil.which("sh") is None, reason="sh not available")
needs_sleep = pytest.mark.skipif(
    os.name != "posix" or shutil.which("sleep") is None, reason="needs POSIX signals and sleep"
)
needs_wc = pytest.mark.skipif(
    shutil.which("sh") is None or shutil.which("wc") is None, reason="sh and wc not available"
)


class TestBuiltinPipelines:
    """Test pipelines of built-in commands and expressions."""

    @pytest.mark.asyncio
    async def test_two_stages(self):
        shell = Shell()
        result = await shell.exec("echo hello | cat")
        assert result.stdout == "hello\n"
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_block_stage_reads_stdin(self):
        shell = Shell()
        result = await shell.exec("echo World | (echo Hello; cat) | cat | x; $x")
        assert result.value == "Hello\nWorld"

    @pytest.mark.asyncio
    async def test_stage_ignoring_stdin(self):
        shell = Shell()
        result = await shell.exec("i = 2; echo hello | echo $i | x; $x")
        assert result.value == 2

    @pytest.mark.asyncio
    async def test_expression_stage(self):
        shell = Shell()
        result = await shell.exec("x = 5; $x | cat")
        assert result.stdout == "5\n"

    @pytest.mark.asyncio
    async def test_stdin_feeds_first_stage(self):
        shell = Shell(stdin="from stdin\n")
        result = await shell.exec("cat | cat")
        assert result.stdout == "from stdin\n"


class TestCapture:
    """Test `| name` output capture."""

    @pytest.mark.asyncio
    async def test_capture(self):
        shell = Shell()
        result = await shell.exec("echo ---Hello--- | x; $x")
        assert result.value == "---Hello---"
        assert result.stdout == ""

    @pytest.mark.asyncio
    async def test_trailing_newlines_are_stripped(self):
        shell = Shell()
        result = await shell.exec("(echo a; echo b) | x; $x")
        assert result.value == "a\nb"

    @pytest.mark.asyncio
    async def test_captured_number(self):
        shell = Shell()
        result = await shell.exec("echo 42 | x; $x + 1")
        assert result.value == 43

    @pytest.mark.asyncio
    async def test_capture_in_block_scope(self):
        shell = Shell()
        result = await shell.exec("(echo hi | inner; $inner)")
        assert result.value == "hi"
        assert (await shell.exec("$inner")).value == "$inner"


class TestExternalCommands:
    """Test pipelines with child processes."""

    @needs_tr
    @pytest.mark.asyncio
    async def test_builtin_into_external(self):
        shell = Shell()
        result = await shell.exec("echo hello | tr a-z A-Z")
        assert result.stdout == "HELLO\n"
        assert result.exit_code == 0

    @needs_tr
    @pytest.mark.asyncio
    async def test_external_reads_shell_stdin(self):
        shell = Shell(stdin="abc\n")
        result = await shell.exec("tr a-z A-Z")
        assert result.stdout == "ABC\n"

    @needs_tr
    @pytest.mark.asyncio
    async def test_capture_external_output(self):
        shell = Shell()
        result = await shell.exec("echo abc | tr a-z A-Z | x; $x")
        assert result.value == "ABC"

    @needs_sh
    @pytest.mark.asyncio
    async def test_exit_code(self):
        shell = Shell()
        result = await shell.exec('sh -c "exit 3"')
        assert result.exit_code == 3
        assert "exit code: 3" in result.stderr

    @needs_sh
    @pytest.mark.asyncio
    async def test_external_failure_in_condition(self):
        shell = Shell()
        result = await shell.exec('if (sh -c "exit 1") (yes) else (no)')
        assert result.value == "no"
        assert result.exit_code == 0

    @needs_sh
    @pytest.mark.asyncio
    async def test_stderr_is_captured(self):
        shell = Shell()
        result = await shell.exec('sh -c "echo oops >&2"')
        assert result.stderr == "oops\n"
        assert result.stdout == ""

    @needs_sh
    @pytest.mark.asyncio
    async def test_working_directory(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec('sh -c "pwd" | x; $x')
        assert result.value == str(tmp_path)

    @needs_sh
    @pytest.mark.asyncio
    async def test_environment(self):
        shell = Shell()
        result = await shell.exec('shmy_greeting = hi; sh -c "echo $shmy_greeting"')
        assert result.stdout == "hi\n"


class TestOutputVariables:
    """Test $__stdout and $__stderr."""

    @pytest.mark.asyncio
    async def test_discard_stdout(self):
        shell = Shell()
        result = await shell.exec("__stdout = NULL; echo hidden")
        assert result.stdout == ""

    @pytest.mark.asyncio
    async def test_stdout_to_file(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("__stdout = out.txt; echo hi; echo there")
        assert result.stdout == ""
        assert (tmp_path / "out.txt").read_text() == "hi\nthere\n"

    @needs_sh
    @pytest.mark.asyncio
    async def test_stderr_to_stdout(self):
        shell = Shell()
        result = await shell.exec('__stderr = __stdout; sh -c "echo oops >&2"')
        assert result.stdout == "oops\n"
        assert result.stderr == ""

    @pytest.mark.asyncio
    async def test_capture_wins_over_stdout_variable(self):
        shell = Shell()
        result = await shell.exec("__stdout = NULL; echo kept | x; $x")
        assert result.value == "kept"


class TestLargeOutput:
    """Test pipelines moving more data than a pipe buffer holds."""

    @needs_wc
    @pytest.mark.asyncio
    async def test_external_stages(self):
        shell = Shell()
        result = await shell.exec('sh -c "head -c 3000000 /dev/zero" | sh -c cat | wc -c')
        assert result.stdout.strip() == "3000000"
        assert result.exit_code == 0

    @needs_wc
    @pytest.mark.asyncio
    async def test_builtin_between_external_stages(self):
        shell = Shell()
        result = await shell.exec('sh -c "head -c 3000000 /dev/zero" | cat | wc -c')
        assert result.stdout.strip() == "3000000"
        assert result.exit_code == 0


def interrupt_after(delay):
    """Send SIGINT to this process after delay seconds."""
    loop = asyncio.get_running_loop()
    return loop.call_later(delay, os.kill, os.getpid(), signal.SIGINT)


class TestInterrupt:
    """Test SIGINT while a pipeline runs."""

    @needs_sleep
    @pytest.mark.asyncio
    async def test_interactive_interrupt_fails_pipeline(self):
        shell = Shell(interactive=True, handle_interrupts=True)
        interrupt_after(0.5)
        started = time.monotonic()
        result = await shell.exec("sleep 20 | cat")
        assert time.monotonic() - started < 10
        assert result.exit_code == 130
        assert not shell.exited

        # The session goes on
        result = await shell.exec("echo still here")
        assert result.stdout == "still here\n"

    @needs_sleep
    @pytest.mark.asyncio
    async def test_interactive_interrupt_kills_every_process(self):
        shell = Shell(interactive=True, handle_interrupts=True)
        interrupt_after(0.5)
        started = time.monotonic()
        result = await shell.exec("sleep 20 | sleep 20")
        assert time.monotonic() - started < 10
        assert result.exit_code == 130

    @needs_sleep
    @pytest.mark.asyncio
    async def test_script_interrupt_is_fatal(self):
        shell = Shell(handle_interrupts=True)
        interrupt_after(0.5)
        result = await shell.exec("sleep 20 | cat; echo after")
        assert result.exit_code == 130
        assert shell.exited
        assert "after" not in result.stdout
        assert "Interrupted" in result.stderr
