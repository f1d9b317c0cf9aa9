"""Sudo command implementation.

Usage: sudo COMMAND [ARG]...

Run a command with elevated privileges. Where elevation needs the
console, the command cannot be part of a pipeline or have its output
redirected.
"""

from ...interpreter.types import Status
from ...types import CommandContext


class SudoCommand:
    """The sudo command."""

    name = "sudo"
    elevated = True

    async def execute(self, args: list[str], ctx: CommandContext) -> Status:
        """Execute the sudo command."""
        if not args:
            return Status.failure("Missing command")
        return await ctx.spawn(["sudo", *args])
