"""Interpreter types for shmy."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Optional, Union

if TYPE_CHECKING:
    from .interpreter import Interpreter
    from .scope import Scope
    from .streams import Sink, Source


@dataclass
class Status:
    """Outcome of a command: success, or failure with a message.

    A failing status that is never consumed by a boolean context aborts the
    enclosing statement sequence.
    """

    error: Optional[str] = None
    """Failure message; None on success."""

    command: str = ""
    """Source text of the command that produced this status."""

    exit_code: int = 0

    checked: bool = False
    """Set once the status is consumed by a boolean context."""

    recorded: bool = False
    """Set once the failure has been appended to $__errors."""

    interrupted: bool = False
    """The command was stopped by an interrupt signal."""

    @classmethod
    def success(cls, command: str = "") -> "Status":
        return cls(command=command)

    @classmethod
    def failure(cls, error: str, command: str = "", exit_code: int = 1) -> "Status":
        return cls(error=error, command=command, exit_code=exit_code or 1)

    @property
    def ok(self) -> bool:
        return self.error is None

    def describe(self) -> str:
        """Render as `command: message`, the form used in $__errors."""
        if self.command:
            return f"{self.command}: {self.error}"
        return self.error or ""

    def __str__(self) -> str:
        return "0" if self.ok else (self.error or "")


Value = Union[str, int, float, Status]

INTEGER = re.compile(r"^[+-]?\d+$")


def infer_value(text: str) -> Union[str, int, float]:
    """Infer the type of an unquoted literal from its text."""
    if INTEGER.match(text):
        return int(text)
    if "_" not in text and text.strip() == text:
        try:
            number = float(text)
        except ValueError:
            return text
        if math.isfinite(number):
            return number
    return text


def format_value(value: Value) -> str:
    """Render a value the way it is displayed and passed to commands."""
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def is_truthy(value: Value) -> bool:
    """Coerce a non-status value to a boolean: zero and empty are false."""
    if isinstance(value, Status):
        return value.ok
    if isinstance(value, (int, float)):
        return value != 0
    return value != ""


@dataclass
class InterpreterContext:
    """Context threaded through evaluation.

    Pipeline stages run concurrently, so each one gets its own context with
    its own streams; they share the interpreter and the scope chain.
    """

    interpreter: "Interpreter"
    scope: "Scope"
    stdin: "Source"
    stdout: "Sink"
    stderr: "Sink"
    loop_depth: int = 0
    """Number of enclosing loops (break/continue outside a loop is an error)."""

    redirected: bool = False
    """Output is bound by an explicit redirect or a pipe; $__stdout does not apply."""

    def child(self, **changes) -> "InterpreterContext":
        """Copy this context with some fields replaced."""
        return replace(self, **changes)
