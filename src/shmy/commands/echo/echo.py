"""Echo command implementation.

Usage: echo [-n] [ARG]...

Write the arguments to standard output, separated by spaces.

Options:
  -n    Do not output the trailing newline
"""

from ...interpreter.types import Status
from ...types import CommandContext


class EchoCommand:
    """The echo command."""

    name = "echo"

    async def execute(self, args: list[str], ctx: CommandContext) -> Status:
        """Execute the echo command."""
        newline = True
        if args and args[0] == "-n":
            newline = False
            args = args[1:]

        await ctx.stdout.write(" ".join(args) + ("\n" if newline else ""))
        return Status.success()
