"""shmy - a shell language interpreter.

A small scripting language that combines shell-like command invocation
(pipes, redirects, globbing) with variables, scoped blocks, if/while/for
and arithmetic, and that stops at the first command failure nobody checked.

Example usage:
    from shmy import Shell

    shell = Shell()
    result = shell.run('for f in *.txt; (echo $f) | files; $files')
    print(result.value)
"""

__version__ = "0.1.0"

from .completion import Completer
from .hooks import Hooks, script_hook
from .interpreter.errors import (
    EvalError,
    ExitError,
    LexError,
    ParseError,
    RedirectError,
    ShellError,
)
from .interpreter.limits import ResourceLimits
from .interpreter.scope import Scope
from .interpreter.types import Status
from .parser import parse
from .shell import Shell, console_shell
from .types import Command, CommandContext, ExecResult

__all__ = [
    "Command",
    "CommandContext",
    "Completer",
    "EvalError",
    "ExecResult",
    "ExitError",
    "Hooks",
    "LexError",
    "ParseError",
    "RedirectError",
    "ResourceLimits",
    "Scope",
    "Shell",
    "ShellError",
    "Status",
    "console_shell",
    "parse",
    "script_hook",
]
