"""Eval command."""

from .eval import EvalCommand

__all__ = ["EvalCommand"]
