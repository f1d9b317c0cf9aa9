"""Main Shell class - the primary API for shmy.

Example usage:
    from shmy import Shell

    # Synchronous usage (for REPL, scripts)
    shell = Shell()
    result = shell.run("echo hello world")
    print(result.stdout)  # "hello world\\n"

    # Async usage (for async applications)
    shell = Shell()
    result = await shell.exec("x = 2; y = 3; $x + $y")
    print(result.value)  # 5

    # With resource limits for child processes
    shell = Shell(limits=ResourceLimits(proc_count=64, job_memory=2**30))

    # Wired to the console, as the command-line entry point does
    shell = Shell(stdin=ConsoleSource(), stdout=ConsoleSink(), stderr=ConsoleSink(sys.stderr))
"""

from __future__ import annotations

import asyncio
import os
import sys
from typing import Optional, Union

import nest_asyncio  # type: ignore[import-untyped]

from .commands import create_command_registry
from .hooks import Hooks
from .interpreter.errors import ExitError
from .interpreter.interpreter import ConfirmCallback, Interpreter
from .interpreter.limits import ResourceLimits
from .interpreter.scope import (
    LIMIT_JOB_MEMORY,
    LIMIT_PROC_COUNT,
    LIMIT_PROC_MEMORY,
    Scope,
    define_arguments,
)
from .interpreter.streams import (
    BufferSink,
    BytesSource,
    ConsoleSink,
    ConsoleSource,
    EmptySource,
    Sink,
    Source,
)
from .types import Command, CommandContext, ExecResult


class Shell:
    """Main shmy interpreter class.

    Keeps one global scope and one working directory across calls to
    exec(), the way an interactive session does.
    """

    def __init__(
        self,
        *,
        env: Optional[dict[str, str]] = None,
        cwd: Optional[str] = None,
        commands: Optional[list[Command]] = None,
        limits: Optional[ResourceLimits] = None,
        interactive: bool = False,
        confirm: Optional[ConfirmCallback] = None,
        hooks: Optional[Hooks] = None,
        stdin: Union[str, bytes, Source, None] = None,
        stdout: Optional[Sink] = None,
        stderr: Optional[Sink] = None,
        handle_interrupts: bool = False,
    ):
        """Initialize the shell.

        Args:
            env: Additional environment variables (on top of the process environment).
            cwd: Initial working directory.
            commands: Extra built-in commands (replacing built-ins of the same name).
            limits: Resource limits for child processes.
            interactive: Interactive mode: an interrupt fails the pipeline instead of the script.
            confirm: Yes/no callback for destructive commands and overwriting redirects.
                Without one, every confirmation is declined (unless $NO_CONFIRM is set).
            hooks: Hook handlers.
            stdin: Standard input: text, bytes or a Source (default: empty).
            stdout: Output sink; captured into ExecResult.stdout when not given.
            stderr: Error sink; captured into ExecResult.stderr when not given.
            handle_interrupts: Handle SIGINT while child processes run.
        """
        environment = dict(os.environ)
        if env:
            environment.update(env)
        self._scope = Scope.root(environment)
        if limits is not None:
            self.set_limits(limits)

        if isinstance(stdin, (str, bytes)):
            stdin = BytesSource(stdin)
        self._stdout = stdout
        self._stderr = stderr
        self.exited = False
        """Set once `exit` / `quit` ran."""

        self._interpreter = Interpreter(
            registry=create_command_registry(commands),
            scope=self._scope,
            stdin=stdin or EmptySource(),
            stdout=stdout or BufferSink(),
            stderr=stderr or BufferSink(),
            cwd=cwd,
            confirm=confirm,
            hooks=hooks,
            interactive=interactive,
            handle_interrupts=handle_interrupts,
        )

    @property
    def scope(self) -> Scope:
        """Get the global scope."""
        return self._scope

    @property
    def cwd(self) -> str:
        """Get the current working directory."""
        return self._interpreter.cwd

    @property
    def interpreter(self) -> Interpreter:
        return self._interpreter

    def set_limits(self, limits: ResourceLimits) -> None:
        """Set the resource limit variables in the global scope."""
        for name, value in (
            (LIMIT_PROC_COUNT, limits.proc_count),
            (LIMIT_PROC_MEMORY, limits.proc_memory),
            (LIMIT_JOB_MEMORY, limits.job_memory),
        ):
            if value is not None:
                self._scope.define(name, value)

    def set_arguments(self, name: str, args: list[str]) -> None:
        """Bind $0, $1.., $# and $@ for a script run."""
        define_arguments(self._scope, name, args)

    async def exec(self, script: str) -> ExecResult:
        """Execute a shmy script.

        Args:
            script: The script to execute.

        Returns:
            ExecResult with captured stdout and stderr (when no sinks were
            given), the exit code and the value of the last statement.
        """
        interpreter = self._interpreter
        if self._stdout is None:
            interpreter.stdout = BufferSink()
        if self._stderr is None:
            interpreter.stderr = BufferSink()

        try:
            result = await interpreter.execute_script(script)
        except ExitError as error:
            self.exited = True
            if error.message:
                await interpreter.stderr.write(error.message + "\n")
            result = ExecResult(stdout="", stderr="", exit_code=error.exit_code)

        if isinstance(interpreter.stdout, BufferSink) and self._stdout is None:
            result.stdout = interpreter.stdout.getvalue()
        if isinstance(interpreter.stderr, BufferSink) and self._stderr is None:
            result.stderr = interpreter.stderr.getvalue()
        return result

    def run(self, script: str) -> ExecResult:
        """Execute a shmy script synchronously.

        This is a convenience wrapper around exec() that works in any context,
        including Jupyter notebooks and async frameworks.
        """
        try:
            asyncio.get_running_loop()
            # We're in an existing event loop (Jupyter, async framework, etc.)
            # Apply nest_asyncio to allow nested event loops
            nest_asyncio.apply()
        except RuntimeError:
            # No running event loop, asyncio.run() will work fine
            pass
        return asyncio.run(self.exec(script))

    async def start_eval_loop(self) -> None:
        """Run the start_eval_loop hooks (before the first interactive prompt)."""
        interpreter = self._interpreter
        ctx = CommandContext(
            name="start_eval_loop",
            scope=self._scope,
            stdin=interpreter.stdin,
            stdout=interpreter.stdout,
            stderr=interpreter.stderr,
            interpreter=interpreter,
        )
        await interpreter.run_hooks("start_eval_loop", ctx)


def console_shell(**kwargs) -> Shell:
    """Create a Shell wired to the process's standard streams."""
    return Shell(
        stdin=ConsoleSource(),
        stdout=ConsoleSink(),
        stderr=ConsoleSink(sys.stderr),
        **kwargs,
    )
