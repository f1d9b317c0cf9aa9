"""Interpreter - AST Evaluation Engine.

Main interpreter class that walks the shmy AST against a scope chain.
Delegates to specialized modules for:
- Variable, tilde and glob expansion (expansion.py)
- Control flow: if, while, for (control_flow.py)
- Commands and pipelines (pipeline.py)

Error propagation: every statement of a sequence but the last is checked
for an unchecked failing Status, which raises StatusAbort. Boolean
contexts (conditions, `&&`, `||`, `!`) consume statuses: they mark them
checked, record failures in $__errors and stop an abort coming from
their operand.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Callable, Optional, Union

from termcolor import colored

from ..ast.types import (
    AssignmentNode,
    BinaryOpNode,
    BlockNode,
    BreakNode,
    CommandNode,
    ContinueNode,
    ForNode,
    IfNode,
    LiteralNode,
    Node,
    PipelineNode,
    RedirectNode,
    ScriptNode,
    UnaryOpNode,
    WhileNode,
)
from ..commands.registry import CommandRegistry, ExternalCommand
from ..hooks import Hooks
from ..parser import parse
from ..types import Command, CommandContext, ExecResult
from .control_flow import execute_for, execute_if, execute_while
from .errors import (
    BreakError,
    ContinueError,
    EvalError,
    RedirectError,
    ShellError,
    StatusAbort,
    SyntaxFailure,
)
from .expansion import expand_arg, expand_word
from .pipeline import Orchestrator
from .scope import ERRORS, NO_COLOR, NO_CONFIRM, Scope
from .streams import ConsoleSink, ConsoleSource, DeferredFileSink, Sink, Source
from .types import InterpreterContext, Status, Value, format_value, is_truthy

logger = logging.getLogger(__name__)

Number = Union[int, float]

ConfirmCallback = Callable[[str], bool]


def _is_number(value: Value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def format_error(source: str, error: ShellError, color: bool = False) -> str:
    """Render an error with the offending source line and a caret marker."""
    if error.pos is None:
        return _colored(error.message, color) + "\n"

    line, col = error.pos.line, error.pos.col
    lines = source.splitlines()
    text = lines[line - 1] if 0 < line <= len(lines) else ""
    return (
        f"Error at line {line}, column {col + 1}:\n"
        f"{text}\n"
        f"{_colored('-' * col + '^', color)}\n"
        f"{_colored(error.message, color)}\n"
    )


def _colored(text: str, color: bool) -> str:
    if not color:
        return text
    return colored(text, "red", attrs=["bold"])


class Interpreter:
    """AST interpreter for shmy."""

    def __init__(
        self,
        registry: CommandRegistry,
        scope: Scope,
        stdin: Optional[Source] = None,
        stdout: Optional[Sink] = None,
        stderr: Optional[Sink] = None,
        cwd: Optional[str] = None,
        confirm: Optional[ConfirmCallback] = None,
        hooks: Optional[Hooks] = None,
        interactive: bool = False,
        handle_interrupts: bool = False,
    ):
        """Initialize the interpreter.

        Args:
            registry: Built-in commands; external programs are found on $PATH.
            scope: The global scope.
            stdin: Standard input of top-level commands.
            stdout: Standard output of top-level commands.
            stderr: Standard error of top-level commands.
            cwd: Initial working directory (default: the process's).
            confirm: Asks the user a yes/no question; None declines everything.
            hooks: Handlers for the change_dir and start_eval_loop events.
            interactive: Report failures and carry on, instead of failing the script.
            handle_interrupts: Install a SIGINT handler while processes run.
        """
        self.registry = registry
        self.scope = scope
        self.stdin = stdin or ConsoleSource()
        self.stdout = stdout or ConsoleSink()
        self.stderr = stderr or ConsoleSink(sys.stderr)
        self.cwd = os.path.abspath(cwd or os.getcwd())
        self.previous_dir: Optional[str] = None
        self.confirm = confirm
        self.hooks = hooks or Hooks()
        self.interactive = interactive
        self.handle_interrupts = handle_interrupts
        self.orchestrator = Orchestrator(self)

    def context(self) -> InterpreterContext:
        """Create the context for a top-level statement sequence."""
        return InterpreterContext(self, self.scope, self.stdin, self.stdout, self.stderr)

    # -- parsing and command resolution ------------------------------------

    def parse(self, source: str) -> ScriptNode:
        return parse(source, self.is_command)

    def is_command(self, name: str) -> bool:
        return self.resolve_command(name, self.scope) is not None

    def search_path(self, scope: Scope) -> str:
        value = scope.get("PATH")
        return os.defpath if value is None else format_value(value)

    def resolve_command(self, name: str, scope: Scope) -> Union[Command, ExternalCommand, None]:
        """Resolve a command name; names containing a path separator are taken relative to cwd."""
        if os.sep in name or (os.altsep and os.altsep in name):
            if name in (os.sep, os.altsep):
                return None
            path = os.path.join(self.cwd, os.path.expanduser(name))
            if os.path.isfile(path) and os.access(path, os.X_OK):
                return ExternalCommand(name, path)
            return None
        return self.registry.resolve(name, self.search_path(scope))

    # -- top level -----------------------------------------------------------

    async def execute_script(self, source: str) -> ExecResult:
        """Parse and evaluate source, reporting failures on stderr.

        The returned result carries the exit code and the value of the last
        statement; output went to the interpreter's sinks.
        """
        value: Optional[Value] = None
        exit_code = 0
        try:
            ast = self.parse(source)
            value = await self.execute_statements(self.context(), ast.statements)
        except SyntaxFailure as error:
            await self.report(source, error)
            exit_code = 2
        except StatusAbort as abort:
            value = abort.status
        except ShellError as error:
            await self.report(source, error)
            exit_code = 1

        if isinstance(value, Status) and not value.ok:
            exit_code = value.exit_code
            if not value.checked:
                await self.report(source, ShellError(value.describe()))
        return ExecResult(stdout="", stderr="", exit_code=exit_code, value=value)

    async def report(self, source: str, error: ShellError) -> None:
        color = self.scope.get(NO_COLOR) is None and self.stderr.is_terminal()
        await self.stderr.write(format_error(source, error, color))

    async def evaluate_source(
        self, text: str, command_ctx: CommandContext, scope: Scope
    ) -> tuple[Optional[Value], Optional[ShellError]]:
        """Evaluate text in scope on behalf of a command (eval, hooks).

        Returns (value, None), or (None, error) when text does not parse or
        evaluation fails. An aborting status is returned as the value.
        """
        ctx = InterpreterContext(
            self,
            scope,
            command_ctx.stdin,
            command_ctx.stdout,
            command_ctx.stderr,
            redirected=True,
        )
        try:
            ast = self.parse(text)
            return await self.execute_statements(ctx, ast.statements), None
        except StatusAbort as abort:
            return abort.status, None
        except ShellError as error:
            return None, error

    # -- evaluation ----------------------------------------------------------

    async def execute_statements(self, ctx: InterpreterContext, statements: list[Node]) -> Value:
        """Evaluate a statement sequence and return the value of the last statement."""
        value: Value = 0
        last = len(statements) - 1
        for i, statement in enumerate(statements):
            try:
                value = await self.evaluate(ctx, statement)
            except (BreakError, ContinueError) as signal:
                if signal.value is None and i > 0:
                    signal.value = value
                raise
            if i < last:
                self.check_status(value)
        return value

    def check_status(self, value: Value) -> None:
        """Abort on an unchecked failing status."""
        if isinstance(value, Status) and not value.ok and not value.checked:
            logger.debug("aborting on %s", value.describe())
            raise StatusAbort(value)

    async def evaluate(self, ctx: InterpreterContext, node: Node) -> Value:
        """Evaluate one AST node."""
        try:
            return await self._evaluate(ctx, node)
        except ShellError as error:
            if error.pos is None:
                error.pos = node.pos
            raise

    async def _evaluate(self, ctx: InterpreterContext, node: Node) -> Value:
        if isinstance(node, LiteralNode):
            return expand_word(node, ctx.scope)
        if isinstance(node, CommandNode):
            return await self.orchestrator.run_command(ctx, node)
        if isinstance(node, PipelineNode):
            return await self.orchestrator.run_pipeline(ctx, node)
        if isinstance(node, AssignmentNode):
            return await self.execute_assignment(ctx, node)
        if isinstance(node, BinaryOpNode):
            if node.op in ("&&", "||"):
                return await self.execute_logical(ctx, node)
            return await self.execute_binary(ctx, node)
        if isinstance(node, UnaryOpNode):
            return await self.execute_unary(ctx, node)
        if isinstance(node, BlockNode):
            return await self.execute_statements(ctx.child(scope=ctx.scope.new_child()), node.statements)
        if isinstance(node, ScriptNode):
            return await self.execute_statements(ctx, node.statements)
        if isinstance(node, RedirectNode):
            return await self.execute_redirect(ctx, node)
        if isinstance(node, IfNode):
            return await execute_if(ctx, node)
        if isinstance(node, WhileNode):
            return await execute_while(ctx, node)
        if isinstance(node, ForNode):
            return await execute_for(ctx, node)
        if isinstance(node, BreakNode):
            if ctx.loop_depth == 0:
                raise EvalError("BREAK outside loop")
            raise BreakError()
        if isinstance(node, ContinueNode):
            if ctx.loop_depth == 0:
                raise EvalError("CONTINUE outside loop")
            raise ContinueError()
        raise EvalError(f"Unknown node type: {type(node).__name__}")

    async def execute_assignment(self, ctx: InterpreterContext, node: AssignmentNode) -> Value:
        if node.value is None:
            old = ctx.scope.erase(node.name)
            if old is None:
                raise EvalError(f"Variable not found: ${node.name}")
            return old

        value = await self.evaluate(ctx, node.value)
        if node.existing:
            ctx.scope.assign(node.name, value)
        else:
            ctx.scope.define(node.name, value)
        return value

    # -- boolean contexts ----------------------------------------------------

    async def consume(self, ctx: InterpreterContext, node: Node) -> Value:
        """Evaluate node in a boolean context.

        A status (including one that aborted the operand) is marked checked
        and, if failing, recorded in $__errors.
        """
        try:
            value = await self.evaluate(ctx, node)
        except StatusAbort as abort:
            value = abort.status
        if isinstance(value, Status):
            value.checked = True
            self.record_error(ctx.scope, value)
        return value

    async def condition(self, ctx: InterpreterContext, node: Node) -> bool:
        """Evaluate an if/while condition; $__errors is reset first."""
        ctx.scope.define(ERRORS, "")
        return is_truthy(await self.consume(ctx, node))

    def record_error(self, scope: Scope, status: Status) -> None:
        """Append a failure to $__errors (once per status)."""
        if status.ok or status.recorded:
            return
        status.recorded = True
        holder = scope.lookup(ERRORS) or scope
        previous = holder.get(ERRORS)
        text = status.describe()
        if isinstance(previous, str) and previous:
            text = f"{previous}\n{text}"
        holder.define(ERRORS, text)

    async def execute_logical(self, ctx: InterpreterContext, node: BinaryOpNode) -> Value:
        """Short-circuiting `&&` / `||`.

        The operand that decides the outcome is the result: a status is
        returned unchecked, so a failing one still aborts unless the whole
        expression is consumed in turn. Other values become 1 or 0.
        """
        value = await self.consume(ctx, node.left)
        if is_truthy(value) == (node.op == "&&"):
            value = await self.consume(ctx, node.right)
        if isinstance(value, Status):
            value.checked = False
            return value
        return int(is_truthy(value))

    # -- arithmetic ----------------------------------------------------------

    def operand(self, value: Value, op: str) -> Union[str, Number]:
        """Reject statuses in arithmetic and comparisons."""
        if isinstance(value, Status):
            if not value.ok and not value.checked:
                raise StatusAbort(value)
            raise EvalError(f"Command status cannot be used with '{op}'")
        return value

    async def execute_binary(self, ctx: InterpreterContext, node: BinaryOpNode) -> Value:
        lhs = self.operand(await self.evaluate(ctx, node.left), node.op)
        rhs = self.operand(await self.evaluate(ctx, node.right), node.op)
        return binary_operation(node.op, lhs, rhs)

    async def execute_unary(self, ctx: InterpreterContext, node: UnaryOpNode) -> Value:
        if node.op == "!":
            return int(not is_truthy(await self.consume(ctx, node.operand)))
        value = self.operand(await self.evaluate(ctx, node.operand), node.op)
        if isinstance(value, str):
            return f"-{value}"
        return -value

    # -- arguments -----------------------------------------------------------

    def argument(self, value: Value) -> Value:
        """Reject statuses used as command (or FOR list) arguments."""
        if isinstance(value, Status):
            if not value.ok and not value.checked:
                raise StatusAbort(value)
            raise EvalError("Command status argument is not allowed")
        return value

    async def expand_args(self, ctx: InterpreterContext, nodes: list[Node]) -> list[str]:
        """Expand argument nodes to strings: variables, tilde, globs and nested blocks."""
        args: list[str] = []
        for node in nodes:
            if isinstance(node, LiteralNode):
                text = format_value(self.argument(expand_word(node, ctx.scope)))
                args.extend(expand_arg(node, text, ctx.scope, self.cwd))
            else:
                args.append(format_value(self.argument(await self.evaluate(ctx, node))))
        return args

    # -- redirects -----------------------------------------------------------

    def confirm_action(self, scope: Scope, prompt: str) -> bool:
        """Ask the user to confirm; always yes when $NO_CONFIRM is defined."""
        if scope.get(NO_CONFIRM) is not None:
            return True
        if self.confirm is None:
            logger.debug("no confirmation callback, declining: %s", prompt)
            return False
        return self.confirm(prompt)

    def output_path(self, name: str) -> str:
        return os.path.join(self.cwd, os.path.expanduser(name))

    def open_output(self, name: str, append: bool) -> IO[bytes]:
        """Open a redirect target relative to the working directory."""
        try:
            return open(self.output_path(name), "ab" if append else "wb")
        except OSError as e:
            raise RedirectError(f"{name}: {e.strerror}") from e

    async def execute_redirect(self, ctx: InterpreterContext, node: RedirectNode) -> Value:
        """Evaluate `expr => file` / `expr =>> file`."""
        if isinstance(node.target, LiteralNode):
            values = await self.expand_args(ctx, [node.target])
            if len(values) != 1:
                raise RedirectError(f"Ambiguous redirect target: {node.target.text}")
            target = values[0]
        else:
            target = format_value(self.argument(await self.evaluate(ctx, node.target)))

        if (
            not node.append
            and os.path.exists(self.output_path(target))
            and not self.confirm_action(ctx.scope, f"{target} exists, overwrite?")
        ):
            return Status.failure("Cancelled by user", f"=> {target}")

        sink = DeferredFileSink(lambda: self.open_output(target, node.append))
        try:
            value = await self.evaluate(ctx.child(stdout=sink, redirected=True), node.expr)
            if not isinstance(value, Status):
                await sink.write(format_value(value) + "\n")
            elif value.ok:
                sink.open()
        finally:
            sink.close_file()
        return value

    # -- working directory and hooks ----------------------------------------

    async def change_dir(self, path: str, command_ctx: CommandContext) -> None:
        """Change the working directory and run the change_dir hooks."""
        self.previous_dir, self.cwd = self.cwd, path
        self.scope.define("PWD", path)
        logger.debug("cwd: %s", path)
        await self.run_hooks("change_dir", command_ctx, path)

    async def run_hooks(self, event: str, command_ctx: CommandContext, *args: str) -> None:
        """Run the handlers of event; their failures are reported, never raised."""
        for message in await self.hooks.run(event, command_ctx, *args):
            await command_ctx.stderr.write(f"{event} hook: {message}\n")


def binary_operation(op: str, lhs: Union[str, Number], rhs: Union[str, Number]) -> Value:
    """Apply an arithmetic or comparison operator to two plain values."""
    if op == "+":
        if _is_number(lhs) and _is_number(rhs):
            return lhs + rhs  # type: ignore[operator]
        return format_value(lhs) + format_value(rhs)

    if op == "-":
        _require_numbers(lhs, rhs, "subtract", "from")
        return lhs - rhs  # type: ignore[operator]

    if op == "*":
        _require_numbers(lhs, rhs, "multiply", "by")
        return lhs * rhs  # type: ignore[operator]

    if op == "/":
        if isinstance(lhs, str) or isinstance(rhs, str):
            return f"{format_value(lhs)}/{format_value(rhs)}"
        if rhs == 0:
            raise EvalError("Division by zero")
        return lhs / rhs

    if op in ("//", "%"):
        verb = "divide" if op == "//" else "take modulo of"
        _require_numbers(lhs, rhs, verb, "by")
        if rhs == 0:
            raise EvalError("Division by zero")
        return lhs // rhs if op == "//" else lhs % rhs  # type: ignore[operator]

    return int(_compare(op, compare(lhs, rhs)))


def _require_numbers(lhs: Value, rhs: Value, verb: str, preposition: str) -> None:
    left, right = _is_number(lhs), _is_number(rhs)
    if left and right:
        return
    if not left and not right:
        raise EvalError(f"Cannot {verb} strings")
    if verb == "subtract":
        # "subtract X from Y" reads right to left
        left, right = right, left
    what = "number" if left else "string"
    other = "string" if left else "number"
    raise EvalError(f"Cannot {verb} {what} {preposition} {other}")


def compare(lhs: Value, rhs: Value) -> int:
    """Three-way comparison of two numbers or two strings."""
    if _is_number(lhs) != _is_number(rhs):
        if _is_number(lhs):
            raise EvalError("Cannot compare number to string")
        raise EvalError("Cannot compare string to number")
    if lhs == rhs:
        return 0
    return -1 if lhs < rhs else 1  # type: ignore[operator]


def _compare(op: str, ordering: int) -> bool:
    if op == "==":
        return ordering == 0
    if op == "!=":
        return ordering != 0
    if op == "<":
        return ordering < 0
    if op == "<=":
        return ordering <= 0
    if op == ">":
        return ordering > 0
    if op == ">=":
        return ordering >= 0
    raise EvalError(f"Unknown operator: {op}")
