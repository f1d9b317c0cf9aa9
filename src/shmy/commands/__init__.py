"""Built-in commands for shmy."""

from typing import Optional

from ..types import Command
from .cat import CatCommand
from .cd import CdCommand
from .defined import DefinedCommand
from .echo import EchoCommand
from .env import EnvCommand
from .eval import EvalCommand
from .exit import ExitCommand, QuitCommand
from .pwd import PwdCommand
from .registry import CommandRegistry, ExternalCommand
from .rm import RmCommand
from .sudo import SudoCommand


def builtin_commands() -> list[Command]:
    """Create one instance of every built-in command."""
    return [
        CatCommand(),
        CdCommand(),
        DefinedCommand(),
        EchoCommand(),
        EnvCommand(),
        EvalCommand(),
        ExitCommand(),
        PwdCommand(),
        QuitCommand(),
        RmCommand(),
        SudoCommand(),
    ]


def create_command_registry(extra: Optional[list[Command]] = None) -> CommandRegistry:
    """Create a registry with all built-in commands plus any extra ones."""
    registry = CommandRegistry(builtin_commands())
    for command in extra or ():
        registry.register(command)
    return registry


__all__ = [
    "CommandRegistry",
    "ExternalCommand",
    "builtin_commands",
    "create_command_registry",
]
