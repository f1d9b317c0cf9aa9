"""Exit and quit commands."""

from .exit import ExitCommand, QuitCommand

__all__ = ["ExitCommand", "QuitCommand"]
