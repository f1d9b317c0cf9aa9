"""Control Flow Execution.

Handles control flow constructs:
- if/else
- while loops
- for loops (over words, expression values, or stdin lines with `-`)
- break/continue

Bodies are blocks, so each iteration runs in a fresh child scope. The value
of a construct is the value of the last body evaluated (0 if none ran).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, AsyncIterator

from ..ast.types import ForNode, IfNode, LiteralNode, WhileNode
from .errors import BreakError, ContinueError
from .expansion import expand_arg, expand_word
from .types import Value, infer_value

if TYPE_CHECKING:
    from ..ast.types import Node
    from .types import InterpreterContext

STDIN_MARKER = "-"


async def execute_if(ctx: "InterpreterContext", node: IfNode) -> Value:
    """Execute an if statement."""
    interpreter = ctx.interpreter
    if await interpreter.condition(ctx, node.condition):
        return await interpreter.evaluate(ctx, node.body)
    if node.else_body is not None:
        return await interpreter.evaluate(ctx, node.else_body)
    return 0


async def execute_while(ctx: "InterpreterContext", node: WhileNode) -> Value:
    """Execute a while loop."""
    interpreter = ctx.interpreter
    body_ctx = ctx.child(loop_depth=ctx.loop_depth + 1)
    value: Value = 0

    while await interpreter.condition(ctx, node.condition):
        try:
            value = await interpreter.evaluate(body_ctx, node.body)
        except BreakError as e:
            if e.value is not None:
                value = e.value
            break
        except ContinueError as e:
            if e.value is not None:
                value = e.value
            continue
        # The iteration is a statement followed by another condition check
        interpreter.check_status(value)
    return value


async def execute_for(ctx: "InterpreterContext", node: ForNode) -> Value:
    """Execute a for loop.

    The loop variable lives in a scope of its own, so it is gone when the
    loop ends.
    """
    interpreter = ctx.interpreter
    loop_scope = ctx.scope.new_child()
    body_ctx = ctx.child(scope=loop_scope, loop_depth=ctx.loop_depth + 1)
    value: Value = 0
    started = False

    async for item in iterate_items(ctx, node.items):
        if started:
            interpreter.check_status(value)
        started = True
        loop_scope.define(node.variable, item)
        try:
            value = await interpreter.evaluate(body_ctx, node.body)
        except BreakError as e:
            if e.value is not None:
                value = e.value
            break
        except ContinueError as e:
            if e.value is not None:
                value = e.value
            continue
    return value


async def iterate_items(ctx: "InterpreterContext", items: list["Node"]) -> AsyncIterator[Value]:
    """Expand a FOR list lazily; an unquoted `-` yields the lines of stdin."""
    interpreter = ctx.interpreter
    for node in items:
        if isinstance(node, LiteralNode):
            if node.text == STDIN_MARKER and not node.quoted and not node.raw:
                async for line in ctx.stdin.lines():
                    yield line
                continue
            value = interpreter.argument(expand_word(node, ctx.scope))
            if isinstance(value, str):
                for word in expand_arg(node, value, ctx.scope, interpreter.cwd):
                    yield word if node.quoted or node.raw else infer_value(word)
            else:
                yield value
        else:
            yield interpreter.argument(await interpreter.evaluate(ctx, node))
