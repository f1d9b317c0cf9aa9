"""Interpreter module for shmy.

Only the leaf modules are imported here; import the Interpreter itself from
`shmy.interpreter.interpreter`.
"""

from .errors import (
    BreakError,
    CommandError,
    ContinueError,
    EvalError,
    ExitError,
    LexError,
    Location,
    ParseError,
    RedirectError,
    ResourceLimitError,
    ShellError,
    StatusAbort,
    SyntaxFailure,
)
from .limits import ResourceLimits
from .scope import Scope
from .streams import BufferSink, BytesSource, EmptySource, NullSink, Sink, Source
from .types import InterpreterContext, Status, Value, format_value, infer_value, is_truthy

__all__ = [
    # Errors
    "BreakError",
    "CommandError",
    "ContinueError",
    "EvalError",
    "ExitError",
    "LexError",
    "Location",
    "ParseError",
    "RedirectError",
    "ResourceLimitError",
    "ShellError",
    "StatusAbort",
    "SyntaxFailure",
    # Values and scopes
    "InterpreterContext",
    "Scope",
    "Status",
    "Value",
    "format_value",
    "infer_value",
    "is_truthy",
    # Streams and limits
    "BufferSink",
    "BytesSource",
    "EmptySource",
    "NullSink",
    "ResourceLimits",
    "Sink",
    "Source",
]
