"""Public types for shmy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .interpreter.interpreter import Interpreter
    from .interpreter.scope import Scope
    from .interpreter.streams import Sink, Source
    from .interpreter.types import Status


@dataclass
class ExecResult:
    """Result of running a script."""

    stdout: str
    stderr: str
    exit_code: int
    value: Any = None
    """Value of the last statement (a Status for commands)."""


@dataclass
class CommandContext:
    """Everything a built-in command gets besides its arguments."""

    name: str
    """Name the command was invoked as."""

    scope: "Scope"
    stdin: "Source"
    stdout: "Sink"
    stderr: "Sink"
    interpreter: "Interpreter"

    @property
    def cwd(self) -> str:
        return self.interpreter.cwd

    @property
    def env(self) -> dict[str, str]:
        return self.scope.environ()

    async def spawn(self, argv: list[str]) -> "Status":
        """Run an external program wired to this command's streams."""
        return await self.interpreter.orchestrator.spawn(argv, self)


class Command(Protocol):
    """Protocol for built-in commands.

    Commands may also set `destructive = True` (confirmation is required
    unless invoked with -f/--force) or `elevated = True` (privilege
    elevation; cannot be piped or redirected on some platforms).
    """

    name: str

    async def execute(self, args: list[str], ctx: CommandContext) -> "Status":
        """Execute the command."""
        ...
