"""Sudo command."""

from .sudo import SudoCommand

__all__ = ["SudoCommand"]
