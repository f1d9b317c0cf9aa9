"""Interpreter errors and control-flow signals.

Error taxonomy:
- LexError / ParseError: malformed input, raised before anything runs
- EvalError: bad substitution pattern, type mismatch, misplaced break
- CommandError: spawn failure of an external command
- RedirectError: redirect target cannot be opened
- ResourceLimitError: spawn refused by the operating system's resource governor

Control-flow signals (not errors in the user's sense):
- StatusAbort: an unchecked failing status bubbling up the statement sequences
- BreakError / ContinueError: loop control
- ExitError: `exit` / `quit`, or a fatal interrupt in script mode
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .types import Status


@dataclass(frozen=True)
class Location:
    """A position in the source text (1-based line, 0-based column)."""

    line: int = 1
    col: int = 0

    def __str__(self) -> str:
        return f"[{self.line}:{self.col}]"


class ShellError(Exception):
    """Base class for errors reported to the user."""

    def __init__(self, message: str, pos: Optional[Location] = None):
        super().__init__(message)
        self.message = message
        self.pos = pos

    def __str__(self) -> str:
        return self.message


class SyntaxFailure(ShellError):
    """Raised before evaluation, when the input cannot be tokenized or parsed."""


class LexError(SyntaxFailure):
    """Malformed token or unterminated literal."""


class ParseError(SyntaxFailure):
    """Grammar violation."""


class EvalError(ShellError):
    """Error raised while evaluating an expression."""


class CommandError(ShellError):
    """A command could not be started."""

    def __init__(
        self,
        message: str,
        command: str = "",
        exit_code: int = 1,
        pos: Optional[Location] = None,
    ):
        super().__init__(message, pos)
        self.command = command
        self.exit_code = exit_code


class RedirectError(ShellError):
    """A redirect target (or $__stdout / $__stderr file) cannot be opened."""


class ResourceLimitError(CommandError):
    """The operating system refused to spawn a process under the current limits."""


class StatusAbort(Exception):
    """Raised when an unchecked failing status ends a statement sequence.

    Caught by boolean contexts (if/while conditions, `&&`, `||`, `!`), which
    treat it as false, by the top level and by the eval command.
    """

    def __init__(self, status: "Status"):
        super().__init__(status.error)
        self.status = status


class _LoopSignal(Exception):
    """Base for break/continue; carries the value of the last statement run."""

    def __init__(self, value: Any = None):
        super().__init__()
        self.value = value


class BreakError(_LoopSignal):
    """Raised by `break` to leave the innermost loop."""


class ContinueError(_LoopSignal):
    """Raised by `continue` to start the next iteration of the innermost loop."""


class ExitError(Exception):
    """Raised by `exit` / `quit` to stop the interpreter."""

    def __init__(self, exit_code: int = 0, message: str = ""):
        super().__init__(message or f"exit {exit_code}")
        self.exit_code = exit_code
        self.message = message
