"""Defined command implementation.

Usage: defined NAME...

Check the existence of variable(s) with the given name(s). Fails with
`NAME is undefined` for the first name that has no binding.
"""

from ...interpreter.types import Status
from ...types import CommandContext


class DefinedCommand:
    """The defined command."""

    name = "defined"

    async def execute(self, args: list[str], ctx: CommandContext) -> Status:
        """Execute the defined command."""
        if not args:
            return Status.failure("Missing variable name")
        for name in args:
            if ctx.scope.lookup(name) is None:
                return Status.failure(f"{name} is undefined")
        return Status.success()
