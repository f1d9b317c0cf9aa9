"""Cd command implementation.

Usage: cd [DIR]

Change the working directory to DIR (default: $HOME). `cd -` returns to
the previous directory. Runs the change_dir hooks.
"""

import os

from ...interpreter.types import Status, format_value
from ...types import CommandContext


class CdCommand:
    """The cd command."""

    name = "cd"

    async def execute(self, args: list[str], ctx: CommandContext) -> Status:
        """Execute the cd command."""
        if len(args) > 1:
            return Status.failure("too many arguments")

        if not args:
            home = ctx.scope.get("HOME")
            if home is None:
                return Status.failure("HOME not set")
            target = format_value(home)
        elif args[0] == "-":
            previous = ctx.interpreter.previous_dir
            if not previous:
                return Status.failure("No previous directory")
            target = previous
        else:
            target = os.path.expanduser(args[0])

        path = os.path.normpath(os.path.join(ctx.cwd, target))
        if not os.path.isdir(path):
            reason = "Not a directory" if os.path.exists(path) else "No such file or directory"
            return Status.failure(f"{target}: {reason}")

        await ctx.interpreter.change_dir(path, ctx)
        return Status.success()
