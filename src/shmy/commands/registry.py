"""Command registry.

Resolves a command name to a built-in command, or to an external program
found on $PATH, or to nothing.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Optional, Union

if TYPE_CHECKING:
    from ..types import Command

logger = logging.getLogger(__name__)

CASE_INSENSITIVE = os.name == "nt"


@dataclass(frozen=True)
class ExternalCommand:
    """A program to be spawned as a child process."""

    name: str
    path: str


def _key(name: str) -> str:
    return name.lower() if CASE_INSENSITIVE else name


class CommandRegistry:
    """Name -> built-in command mapping with external fallback."""

    def __init__(self, commands: Optional[Iterable["Command"]] = None):
        self._commands: dict[str, "Command"] = {}
        for command in commands or ():
            self.register(command)

    def register(self, command: "Command") -> None:
        """Register a built-in command (replacing any with the same name)."""
        self._commands[_key(command.name)] = command

    def get(self, name: str) -> Optional["Command"]:
        """Get a built-in command by name."""
        return self._commands.get(_key(name))

    def __contains__(self, name: str) -> bool:
        return _key(name) in self._commands

    def names(self) -> list[str]:
        return sorted(command.name for command in self._commands.values())

    def resolve(
        self, name: str, search_path: Optional[str] = None
    ) -> Union["Command", ExternalCommand, None]:
        """Resolve name to a built-in, an external program, or None."""
        command = self.get(name)
        if command is not None:
            return command
        path = shutil.which(name, path=search_path)
        if path is None:
            return None
        logger.debug("resolved %s to %s", name, path)
        return ExternalCommand(name, path)
