"""Process orchestration: runs commands and pipelines.

A pipeline runs in four phases:
1. Resolve every stage (built-in, external program, or an in-process
   expression) and expand its arguments.
2. Check elevated commands, then ask for confirmation of destructive
   built-ins. Nothing has started yet, so a decline leaves nothing behind.
3. Start every stage. Connections between stages are bounded channels,
   each serviced independently, so a stage blocked on a full buffer never
   stalls the others.
4. Wait for all stages. An interrupt kills every live process and yields a
   failed status (fatal in script mode).

The status of the pipeline is the status of its last stage; failures of
earlier stages are recorded in $__errors.
"""

from __future__ import annotations

import asyncio
import contextlib
import errno
import logging
import os
import shutil
import signal
import subprocess
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Union

from ..ast.types import CommandNode, PipelineNode
from ..commands.registry import ExternalCommand
from ..types import Command, CommandContext
from .errors import CommandError, ExitError, ResourceLimitError, StatusAbort
from .limits import ResourceLimits
from .scope import STDERR, STDOUT
from .streams import (
    BufferSink,
    Channel,
    ChannelSink,
    ChannelSource,
    DeferredFileSink,
    FileSink,
    NullSink,
    ReaderSource,
    Sink,
    Source,
    WriterSink,
    relay,
)
from .types import InterpreterContext, Status, Value, format_value, infer_value

if TYPE_CHECKING:
    from ..ast.types import Node
    from .interpreter import Interpreter

logger = logging.getLogger(__name__)

# Elevated commands need the console (no pipes, no redirects) on Windows
ELEVATION_REQUIRES_TERMINAL = os.name == "nt"

ELEVATION_ERROR = "Cannot pipe or redirect input/output to/from elevated command"

INTERRUPTED_EXIT_CODE = 130


def is_forced(args: list[str]) -> bool:
    """Check for -f / --force, including grouped short flags like -rf."""
    for arg in args:
        if arg == "--force":
            return True
        if arg.startswith("-") and not arg.startswith("--") and "f" in arg[1:]:
            return True
    return False


@dataclass
class Stage:
    """One element of a pipeline."""

    node: "Node"
    text: str = ""
    name: str = ""
    args: list[str] = field(default_factory=list)
    command: Union[Command, ExternalCommand, None] = None
    stdin: Optional[Source] = None
    stdout: Optional[Sink] = None
    stderr: Optional[Sink] = None
    process: Optional[asyncio.subprocess.Process] = None
    task: Optional[asyncio.Task] = None
    # Channels created by connect(), closed when the stage finishes
    owned: list[Union[ChannelSink, ChannelSource]] = field(default_factory=list)

    @property
    def is_external(self) -> bool:
        return isinstance(self.command, ExternalCommand)

    @property
    def is_builtin(self) -> bool:
        return self.command is not None and not self.is_external

    @property
    def is_expression(self) -> bool:
        return not isinstance(self.node, CommandNode)


class Orchestrator:
    """Runs command invocations and pipelines for an Interpreter."""

    def __init__(self, interpreter: "Interpreter"):
        self.interpreter = interpreter

    async def run_command(self, ctx: InterpreterContext, node: CommandNode) -> Status:
        """Run a single command invocation."""
        return await self.run_stages(ctx, [node])

    async def run_pipeline(self, ctx: InterpreterContext, node: PipelineNode) -> Status:
        """Run a pipeline, capturing its output into a variable when it ends in `| name`."""
        if node.capture is None:
            return await self.run_stages(ctx, node.stages)

        buffer = BufferSink()
        status = await self.run_stages(ctx.child(stdout=buffer, redirected=True), node.stages)
        text = buffer.getvalue().rstrip("\r\n")
        ctx.scope.define(node.capture, infer_value(text))
        return status

    async def run_stages(self, ctx: InterpreterContext, nodes: list["Node"]) -> Status:
        # Phase 1: resolve stages and expand arguments
        stages = [await self.resolve(ctx, node) for node in nodes]
        for stage in stages:
            if stage.command is None and not stage.is_expression:
                return Status.failure(f"{stage.name}: command not found", stage.text, 127)

        refused = self.check_elevation(ctx, stages)
        if refused is not None:
            return refused

        # Phase 2: confirmation, before anything starts
        for stage in stages:
            if stage.is_builtin and getattr(stage.command, "destructive", False):
                if not is_forced(stage.args) and not self.interpreter.confirm_action(
                    ctx.scope, f"{stage.text}: are you sure?"
                ):
                    return Status.failure("Cancelled by user", stage.text)

        # Redirect targets are truncated only after every confirmation
        for sink in (ctx.stdout, ctx.stderr):
            if isinstance(sink, DeferredFileSink):
                sink.open()

        with contextlib.ExitStack() as files:
            stdout, stderr = self.output_streams(ctx, files)
            self.connect(ctx, stages, stdout, stderr)
            statuses = await self.execute(ctx, stages)

        for stage, status in zip(stages[:-1], statuses[:-1]):
            if not status.ok:
                self.interpreter.record_error(ctx.scope, status)
        result = statuses[-1]
        logger.debug("pipeline %r finished: %s", [s.text for s in stages], result)
        return result

    async def resolve(self, ctx: InterpreterContext, node: "Node") -> Stage:
        if not isinstance(node, CommandNode):
            return Stage(node)
        args = await self.interpreter.expand_args(ctx, node.args)
        command = self.interpreter.resolve_command(node.name, ctx.scope)
        return Stage(node, text=node.text, name=node.name, args=args, command=command)

    def check_elevation(self, ctx: InterpreterContext, stages: list[Stage]) -> Optional[Status]:
        if not ELEVATION_REQUIRES_TERMINAL:
            return None
        for stage in stages:
            redirected = ctx.redirected or ctx.scope.get(STDOUT) is not None
            if getattr(stage.command, "elevated", False) and (len(stages) > 1 or redirected):
                return Status.failure(ELEVATION_ERROR, stage.text)
        return None

    def output_streams(self, ctx: InterpreterContext, files: contextlib.ExitStack) -> tuple[Sink, Sink]:
        """Resolve the pipeline's stdout and stderr, honoring $__stdout and $__stderr."""
        stdout = ctx.stdout
        if not ctx.redirected:
            target = ctx.scope.get(STDOUT)
            if target is not None:
                stdout = self.open_target(ctx, target, stdout, ctx.stderr, files)

        stderr = ctx.stderr
        target = ctx.scope.get(STDERR)
        if target is not None:
            stderr = self.open_target(ctx, target, stdout, ctx.stderr, files)
        return stdout, stderr

    def open_target(
        self,
        ctx: InterpreterContext,
        target: Value,
        stdout: Sink,
        stderr: Sink,
        files: contextlib.ExitStack,
    ) -> Sink:
        name = format_value(target)
        if name == "NULL":
            return NullSink()
        if name in ("__stdout", "1"):
            return stdout
        if name in ("__stderr", "2"):
            return stderr
        return FileSink(files.enter_context(self.interpreter.open_output(name, append=True)))

    def connect(self, ctx: InterpreterContext, stages: list[Stage], stdout: Sink, stderr: Sink) -> None:
        """Bind every stage's streams; stage i's output feeds stage i+1's input."""
        stages[0].stdin = ctx.stdin
        for upstream, downstream in zip(stages, stages[1:]):
            channel = Channel()
            upstream.stdout = ChannelSink(channel)
            downstream.stdin = ChannelSource(channel)
            upstream.owned.append(upstream.stdout)
            downstream.owned.append(downstream.stdin)
        stages[-1].stdout = stdout
        for stage in stages:
            stage.stderr = stdout if stderr is stdout else stderr

    async def execute(self, ctx: InterpreterContext, stages: list[Stage]) -> list[Status]:
        # Phase 3: start everything
        process_count = sum(1 for s in stages if s.is_external)
        limits = ResourceLimits.from_scope(ctx.scope)
        preexec = limits.preexec_fn(process_count)
        for stage in stages:
            if stage.is_external:
                coro = self.run_external(ctx, stage, preexec)
            elif stage.is_builtin:
                coro = self.run_builtin(ctx, stage)
            else:
                coro = self.run_expression(ctx, stage)
            stage.task = asyncio.create_task(coro)

        # Phase 4: wait, unless interrupted
        tasks = [stage.task for stage in stages if stage.task is not None]
        interrupted = asyncio.Event()
        loop = asyncio.get_running_loop()
        handler = process_count > 0 and self.install_interrupt_handler(loop, interrupted)
        waiter = asyncio.create_task(interrupted.wait())
        everything = asyncio.gather(*tasks)
        try:
            await asyncio.wait({everything, waiter}, return_when=asyncio.FIRST_COMPLETED)
            if interrupted.is_set():
                await self.terminate(stages)
                return self.interrupted(stages)
            return everything.result()
        finally:
            waiter.cancel()
            if handler:
                loop.remove_signal_handler(signal.SIGINT)
            if any(not task.done() for task in tasks):
                await self.terminate(stages)
            with contextlib.suppress(asyncio.CancelledError):
                await asyncio.gather(everything, return_exceptions=True)

    def install_interrupt_handler(self, loop: asyncio.AbstractEventLoop, event: asyncio.Event) -> bool:
        if not self.interpreter.handle_interrupts:
            return False
        try:
            loop.add_signal_handler(signal.SIGINT, event.set)
        except (NotImplementedError, RuntimeError, ValueError):
            return False
        return True

    async def terminate(self, stages: list[Stage]) -> None:
        """Kill every live process and cancel in-process stages."""
        for stage in stages:
            if stage.process is not None and stage.process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    stage.process.kill()
            if stage.task is not None and not stage.task.done():
                stage.task.cancel()
        await asyncio.gather(*(s.task for s in stages if s.task is not None), return_exceptions=True)

    def interrupted(self, stages: list[Stage]) -> list[Status]:
        if not self.interpreter.interactive:
            raise ExitError(INTERRUPTED_EXIT_CODE, "Interrupted")
        status = Status.failure("Interrupted", stages[-1].text, INTERRUPTED_EXIT_CODE)
        status.interrupted = True
        return [status] * len(stages)

    async def finish_stage(self, stage: Stage) -> None:
        """Close the stage's end of the pipes connecting it to its neighbours."""
        for end in stage.owned:
            if isinstance(end, ChannelSink):
                await end.close()
            else:
                end.close_reader()

    async def run_builtin(self, ctx: InterpreterContext, stage: Stage) -> Status:
        assert stage.stdin is not None and stage.stdout is not None and stage.stderr is not None
        command_ctx = CommandContext(
            name=stage.name,
            scope=ctx.scope,
            stdin=stage.stdin,
            stdout=stage.stdout,
            stderr=stage.stderr,
            interpreter=self.interpreter,
        )
        try:
            status = await stage.command.execute(stage.args, command_ctx)  # type: ignore[union-attr]
        except BrokenPipeError:
            status = Status.success()
        finally:
            await self.finish_stage(stage)
        status.command = stage.text
        return status

    async def run_expression(self, ctx: InterpreterContext, stage: Stage) -> Status:
        """Evaluate a non-command stage in-process, printing plain values."""
        assert stage.stdin is not None and stage.stdout is not None and stage.stderr is not None
        stage_ctx = ctx.child(stdin=stage.stdin, stdout=stage.stdout, stderr=stage.stderr, redirected=True)
        try:
            value = await self.interpreter.evaluate(stage_ctx, stage.node)
            if isinstance(value, Status):
                return value
            await stage.stdout.write(format_value(value) + "\n")
            return Status.success()
        except StatusAbort as abort:
            return abort.status
        except BrokenPipeError:
            return Status.success()
        finally:
            await self.finish_stage(stage)

    async def run_external(self, ctx: InterpreterContext, stage: Stage, preexec) -> Status:
        assert isinstance(stage.command, ExternalCommand)
        try:
            return await self.run_process(
                [stage.command.path, *stage.args],
                stage,
                env=ctx.scope.environ(),
                preexec=preexec,
            )
        finally:
            await self.finish_stage(stage)

    async def run_process(self, argv: list[str], stage: Stage, env: dict[str, str], preexec=None) -> Status:
        """Spawn one process wired to the stage's streams and wait for it."""
        assert stage.stdin is not None and stage.stdout is not None and stage.stderr is not None
        stdin = stage.stdin.subprocess_stdin()
        stdout = stage.stdout.subprocess_target()
        if stage.stderr is stage.stdout:
            stderr = asyncio.subprocess.STDOUT
        else:
            stderr = stage.stderr.subprocess_target()

        try:
            process = await self.start_process(argv, stage.text, stdin, stdout, stderr, env, preexec)
        except CommandError as e:
            return Status.failure(e.message, e.command, e.exit_code)
        stage.process = process

        relays = []
        if stdin is None:
            assert process.stdin is not None
            relays.append(relay(stage.stdin, WriterSink(process.stdin)))
        if stdout is None:
            assert process.stdout is not None
            relays.append(relay(ReaderSource(process.stdout), stage.stdout, close=False))
        if stderr is None:
            assert process.stderr is not None
            relays.append(relay(ReaderSource(process.stderr), stage.stderr, close=False))

        await asyncio.gather(*relays)
        code = await process.wait()
        if code == 0:
            return Status.success(stage.text)
        if code < 0:
            return Status.failure(f"terminated by signal {-code}", stage.text, 128 - code)
        return Status.failure(f"exit code: {code}", stage.text, code)

    async def start_process(
        self,
        argv: list[str],
        text: str,
        stdin: Optional[int],
        stdout: Optional[int],
        stderr: Optional[int],
        env: dict[str, str],
        preexec,
    ) -> asyncio.subprocess.Process:
        """Spawn a child process; None streams become pipes.

        Raises:
            ResourceLimitError: The system refused the spawn under the current limits.
            CommandError: The program could not be started.
        """
        pipe = asyncio.subprocess.PIPE
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=pipe if stdin is None else stdin,
                stdout=pipe if stdout is None else stdout,
                stderr=pipe if stderr is None else stderr,
                cwd=self.interpreter.cwd,
                env=env,
                preexec_fn=preexec,
            )
        except FileNotFoundError as e:
            raise CommandError(e.strerror or str(e), text, 127) from e
        except PermissionError as e:
            raise CommandError(e.strerror or str(e), text, 126) from e
        except OSError as e:
            if e.errno in (errno.EAGAIN, errno.ENOMEM):
                raise ResourceLimitError(f"Resource limit exceeded: {e.strerror}", text) from e
            raise CommandError(e.strerror or str(e), text) from e
        except subprocess.SubprocessError as e:
            # preexec_fn failed in the child (setrlimit refused)
            raise ResourceLimitError(f"Resource limit exceeded: {e}", text) from e
        logger.debug("spawned %s (pid %d)", argv[0], process.pid)
        return process

    async def spawn(self, argv: list[str], command_ctx: CommandContext) -> Status:
        """Run an external program on behalf of a built-in command."""
        path = shutil.which(argv[0], path=self.interpreter.search_path(command_ctx.scope))
        text = " ".join(argv)
        if path is None:
            return Status.failure(f"{argv[0]}: command not found", text, 127)
        stage = Stage(
            CommandNode(argv[0]),
            text=text,
            name=argv[0],
            args=argv[1:],
            stdin=command_ctx.stdin,
            stdout=command_ctx.stdout,
            stderr=command_ctx.stderr,
        )
        preexec = ResourceLimits.from_scope(command_ctx.scope).preexec_fn(1)
        return await self.run_process([path, *argv[1:]], stage, env=command_ctx.env, preexec=preexec)
