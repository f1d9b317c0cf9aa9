"""Defined command."""

from .defined import DefinedCommand

__all__ = ["DefinedCommand"]
