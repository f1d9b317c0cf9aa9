"""Hook call points.

Handlers are registered programmatically for an event and called with the
CommandContext of the command that triggered it plus event arguments:
- start_eval_loop: once, before the first interactive prompt (no arguments)
- change_dir: after `cd` changed the working directory (the new directory)

A handler may be a plain function or a coroutine function. It may return
a Status; a failing one is reported like an exception would be. Hook
failures never stop the interpreter.

Example:
    hooks = Hooks()
    hooks.register("change_dir", script_hook("~/.shmy/hooks/git_branch.my"))
    shell = Shell(hooks=hooks)
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable

from .commands.eval import EvalCommand
from .interpreter.types import Status
from .types import CommandContext

logger = logging.getLogger(__name__)

EVENTS = ("start_eval_loop", "change_dir")

HookHandler = Callable[..., Any]


class Hooks:
    """Event name -> handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[HookHandler]] = {event: [] for event in EVENTS}

    def register(self, event: str, handler: HookHandler) -> None:
        """Register handler for event."""
        if event not in self._handlers:
            raise ValueError(f"Unknown hook event: {event}")
        self._handlers[event].append(handler)

    def handlers(self, event: str) -> list[HookHandler]:
        return list(self._handlers.get(event, ()))

    async def run(self, event: str, ctx: CommandContext, *args: str) -> list[str]:
        """Call every handler of event; return the failure messages."""
        errors: list[str] = []
        for handler in self.handlers(event):
            try:
                result = handler(ctx, *args)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                logger.exception("%s hook failed", event)
                errors.append(str(e) or type(e).__name__)
                continue
            if isinstance(result, Status) and not result.ok:
                errors.append(result.describe())
        return errors


def script_hook(path: str) -> HookHandler:
    """Create a handler that sources a shmy script quietly, passing the event arguments."""

    async def run_script(ctx: CommandContext, *args: str) -> Status:
        return await EvalCommand().execute(["--quiet", "--source", path, *args], ctx)

    return run_script
