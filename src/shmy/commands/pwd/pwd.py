"""Pwd command implementation.

Usage: pwd [-LP]

Print the name of the current working directory.

Options:
  -L    Print the logical working directory (default)
  -P    Print the physical directory, without any symbolic links
"""

import os

from ...interpreter.types import Status
from ...types import CommandContext


class PwdCommand:
    """The pwd command."""

    name = "pwd"

    async def execute(self, args: list[str], ctx: CommandContext) -> Status:
        """Execute the pwd command."""
        physical = False

        for arg in args:
            if not arg.startswith("-"):
                return Status.failure("too many arguments")
            for c in arg[1:]:
                if c == "P":
                    physical = True
                elif c == "L":
                    physical = False
                else:
                    return Status.failure(f"invalid option -- '{c}'")

        cwd = os.path.realpath(ctx.cwd) if physical else ctx.cwd
        await ctx.stdout.write(f"{cwd}\n")
        return Status.success()
