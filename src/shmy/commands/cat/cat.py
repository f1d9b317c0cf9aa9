"""Cat command implementation.

Usage: cat [FILE]...

Concatenate files to standard output. With no FILE, or when FILE is -,
read standard input.
"""

import os

from ...interpreter.streams import CHUNK_SIZE
from ...interpreter.types import Status
from ...types import CommandContext


class CatCommand:
    """The cat command."""

    name = "cat"

    async def execute(self, args: list[str], ctx: CommandContext) -> Status:
        """Execute the cat command."""
        for path in args or ["-"]:
            if path == "-":
                while True:
                    chunk = await ctx.stdin.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    await ctx.stdout.write(chunk)
                continue

            try:
                with open(os.path.join(ctx.cwd, os.path.expanduser(path)), "rb") as f:
                    while True:
                        chunk = f.read(CHUNK_SIZE)
                        if not chunk:
                            break
                        await ctx.stdout.write(chunk)
            except OSError as e:
                return Status.failure(f"{path}: {e.strerror}")

        return Status.success()
