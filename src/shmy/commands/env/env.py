"""Env command implementation.

Usage: env

Print the environment that child processes receive.
"""

from ...interpreter.types import Status
from ...types import CommandContext


class EnvCommand:
    """The env command - print environment."""

    name = "env"

    async def execute(self, args: list[str], ctx: CommandContext) -> Status:
        """Execute the env command."""
        if "--help" in args:
            await ctx.stdout.write("Usage: env\n")
            return Status.success()
        if args:
            return Status.failure(f"Unexpected argument: {args[0]}")

        lines = [f"{k}={v}" for k, v in sorted(ctx.env.items())]
        await ctx.stdout.write("\n".join(lines) + "\n" if lines else "")
        return Status.success()
