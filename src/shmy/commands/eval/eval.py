"""Eval command implementation.

Usage: eval [-x] [-s] [-q] EXPR...

Evaluate each argument as an expression, stopping at the first error.

Options:
  -x, --export   Export variables defined by the expressions to the global scope
  -s, --source   Treat the first argument as the path to a script file; the
                 remaining arguments become $1, $2, ... ($0 is the path,
                 $# the count, $@ all of them). The script runs in the
                 current scope.
  -q, --quiet    Do not print the values of expressions that are not commands

Examples:
    eval --export "x = 100"
    eval "x = 1" "y = 2"
    eval --source script.my arg1 arg2
"""

import os

from ...interpreter.scope import define_arguments, is_special
from ...interpreter.types import Status, format_value
from ...types import CommandContext

FLAGS = {
    "-x": "export",
    "--export": "export",
    "-s": "source",
    "--source": "source",
    "-q": "quiet",
    "--quiet": "quiet",
}


class EvalCommand:
    """The eval command."""

    name = "eval"

    async def execute(self, args: list[str], ctx: CommandContext) -> Status:
        """Execute the eval command."""
        options: set[str] = set()
        exprs: list[str] = []
        for i, arg in enumerate(args):
            if arg == "--help":
                await ctx.stdout.write(__doc__.strip() + "\n")
                return Status.success()
            if arg in FLAGS:
                options.add(FLAGS[arg])
            elif arg.startswith("-") and len(arg) > 1 and all(f"-{c}" in FLAGS for c in arg[1:]):
                options.update(FLAGS[f"-{c}"] for c in arg[1:])
            else:
                exprs = args[i:]
                break

        if not exprs:
            return Status.failure("Missing expression")

        export = "export" in options
        if "source" in options:
            return await self.source(exprs[0], exprs[1:], ctx, export, "quiet" in options)

        # Expressions run in a nested scope; --export copies its bindings to the global scope
        eval_scope = ctx.scope.new_child()
        for expr in exprs:
            status = await self.evaluate(expr, expr, ctx, eval_scope, "quiet" in options)
            if not status.ok:
                return status

        if export:
            self.export(eval_scope, ctx)
        return Status.success()

    async def source(
        self, path: str, script_args: list[str], ctx: CommandContext, export: bool, quiet: bool
    ) -> Status:
        try:
            with open(os.path.join(ctx.cwd, os.path.expanduser(path)), encoding="utf-8") as f:
                script = f.read()
        except OSError as e:
            return Status.failure(f"{path}: {e.strerror}")

        scope = ctx.scope.new_child() if export else ctx.scope
        define_arguments(scope, path, script_args)

        status = await self.evaluate(script, path, ctx, scope, quiet=True)
        if status.ok and export:
            self.export(scope, ctx)
        return status

    async def evaluate(self, text: str, label: str, ctx: CommandContext, scope, quiet: bool) -> Status:
        interpreter = ctx.interpreter
        value, error = await interpreter.evaluate_source(text, ctx, scope)
        if error is not None:
            return Status.failure(f"Error evaluating '{label}': {error}")
        if isinstance(value, Status):
            if not value.ok:
                return Status.failure(value.error or "", exit_code=value.exit_code)
            return Status.success()
        if not quiet:
            await ctx.stdout.write(format_value(value) + "\n")
        return Status.success()

    def export(self, scope, ctx: CommandContext) -> None:
        global_scope = ctx.scope.global_scope()
        for name in list(scope.vars):
            display, value = scope.vars[name]
            if not is_special(display):
                global_scope.define(display, value)
