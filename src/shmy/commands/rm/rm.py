"""Rm command implementation.

Usage: rm [-rf] FILE...

Remove files (and, with -r, directories). Asks for confirmation before
running unless -f is given or $NO_CONFIRM is set.

Options:
  -r, --recursive   Remove directories and their contents
  -f, --force       Do not ask; ignore nonexistent files
"""

import os
import shutil

from ...interpreter.types import Status
from ...types import CommandContext


class RmCommand:
    """The rm command."""

    name = "rm"
    destructive = True

    async def execute(self, args: list[str], ctx: CommandContext) -> Status:
        """Execute the rm command."""
        recursive = False
        force = False
        paths: list[str] = []

        for arg in args:
            if arg in ("-r", "-R", "--recursive"):
                recursive = True
            elif arg == "--force":
                force = True
            elif arg.startswith("-") and len(arg) > 1:
                for c in arg[1:]:
                    if c in "rR":
                        recursive = True
                    elif c == "f":
                        force = True
                    else:
                        return Status.failure(f"Unknown flag: -{c}")
            else:
                paths.append(arg)

        if not paths:
            return Status.failure("Missing operand")

        for path in paths:
            full = os.path.join(ctx.cwd, path)
            try:
                if os.path.isdir(full) and not os.path.islink(full):
                    if not recursive:
                        return Status.failure(f"{path}: Is a directory")
                    shutil.rmtree(full)
                else:
                    os.remove(full)
            except FileNotFoundError:
                if not force:
                    return Status.failure(f"{path}: No such file or directory")
            except OSError as e:
                return Status.failure(f"{path}: {e.strerror}")

        return Status.success()
