"""Exit command implementation.

Usage: exit [EXIT_CODE]
       quit [EXIT_CODE]

Exit the shell with the specified exit code (default: 0).
"""

from ...interpreter.errors import ExitError
from ...interpreter.types import Status
from ...types import CommandContext


class ExitCommand:
    """The exit command."""

    name = "exit"

    async def execute(self, args: list[str], ctx: CommandContext) -> Status:
        """Execute the exit command."""
        if len(args) > 1:
            return Status.failure("too many arguments")
        exit_code = 0
        if args:
            try:
                exit_code = int(args[0])
            except ValueError:
                return Status.failure("Invalid exit code. Please provide a valid integer.")
        raise ExitError(exit_code)


class QuitCommand(ExitCommand):
    """The quit command (same as exit)."""

    name = "quit"
