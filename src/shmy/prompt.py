"""Interactive prompt rendering and yes/no confirmation.

$__prompt escapes:
- \\u  user name
- \\h  host name up to the first dot
- \\H  full host name
- \\w  current working directory (home shown as ~)
- \\$  `#` when elevated, `$` otherwise
- \\b  current git branch ($GIT_BRANCH, set by a change_dir hook)
- \\_  a space
- \\\\  a backslash

Any other escaped character is kept as written.
"""

from __future__ import annotations

import getpass
import os
import socket
import sys
from typing import IO, Optional

from termcolor import colored

from .interpreter.scope import PROMPT, Scope
from .interpreter.types import format_value

DEFAULT_PROMPT = "\\w> "


def is_elevated() -> bool:
    """Check whether the shell runs with administrator privileges."""
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def _home_relative(cwd: str, scope: Scope) -> str:
    home = scope.get("HOME")
    if home is None:
        return cwd
    home_dir = format_value(home).rstrip(os.sep)
    if home_dir and (cwd == home_dir or cwd.startswith(home_dir + os.sep)):
        return "~" + cwd[len(home_dir):]
    return cwd


def render_prompt(scope: Scope, cwd: str) -> str:
    """Expand the escapes of $__prompt (or the default prompt)."""
    template = scope.get(PROMPT)
    text = DEFAULT_PROMPT if template is None else format_value(template)

    result: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch != "\\" or i + 1 >= len(text):
            result.append(ch)
            i += 1
            continue
        code = text[i + 1]
        i += 2
        if code == "u":
            result.append(getpass.getuser())
        elif code == "h":
            result.append(socket.gethostname().split(".")[0])
        elif code == "H":
            result.append(socket.gethostname())
        elif code == "w":
            result.append(_home_relative(cwd, scope))
        elif code == "$":
            result.append("#" if is_elevated() else "$")
        elif code == "b":
            branch = scope.get("GIT_BRANCH")
            result.append("" if branch is None else format_value(branch))
        elif code == "_":
            result.append(" ")
        elif code == "\\":
            result.append("\\")
        else:
            result.append("\\" + code)
    return "".join(result)


def parse_answer(answer: str) -> bool:
    """Only an answer starting with y (any case) means yes."""
    return answer.strip()[:1].lower() == "y"


def confirm(
    prompt: str,
    color: bool = False,
    stdin: Optional[IO[str]] = None,
    stdout: Optional[IO[str]] = None,
) -> bool:
    """Ask a yes/no question on the terminal; the default answer is no."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stderr
    if color:
        options = f"{colored('y', 'green', attrs=['bold'])}es/{colored('N', 'red', attrs=['bold'])}o"
    else:
        options = "[Y]es/[N]o"
    stdout.write(f"{prompt} ({options}) ")
    stdout.flush()
    return parse_answer(stdin.readline())
