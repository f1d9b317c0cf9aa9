"""Command-line entry point.

Usage:
    shmy                       interactive session (or a script on piped stdin)
    shmy -c COMMAND...         run the words after -c as one command line
    shmy SCRIPT [ARG...]       run a script file; ARGs become $1, $2, ...

Exit status is the status of the last statement (2 for syntax errors,
130 when interrupted).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Optional, Sequence

try:
    import readline
except ImportError:  # not available on Windows
    readline = None  # type: ignore[assignment]

from . import __version__
from .completion import Completer
from .interpreter.scope import NO_COLOR
from .interpreter.types import Status, format_value
from .prompt import confirm, render_prompt
from .shell import Shell, console_shell

logger = logging.getLogger("shmy")

EXIT_USAGE = 2

LEAVE_HINT = 'Type "quit" or "exit" to leave the shell.'


def _configure_logging(verbose: int) -> None:
    """0 -> WARNING, 1 -> INFO, 2+ -> DEBUG."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shmy",
        description="Interpreter for the shmy shell language.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )
    parser.add_argument(
        "-c",
        dest="command",
        nargs=argparse.REMAINDER,
        help="Run the remaining arguments as a command line.",
    )
    parser.add_argument("script", nargs="?", help="Script file to run.")
    parser.add_argument("args", nargs=argparse.REMAINDER, help="Script arguments.")
    return parser


def _use_color(shell: Shell) -> bool:
    return shell.scope.get(NO_COLOR) is None and sys.stderr.isatty()


def _attach_confirm(shell: Shell) -> None:
    """Ask confirmations on the terminal; without one, decline."""

    def ask(prompt: str) -> bool:
        if not sys.stdin.isatty():
            return False
        return confirm(prompt, _use_color(shell))

    shell.interpreter.confirm = ask


class ReadlineCompletion:
    """Adapts a Completer to readline's complete(text, state) protocol.

    Word delimiters are cleared so readline hands over the whole line up to
    the cursor, which is what Completer.complete() replaces.
    """

    def __init__(self, completer: Completer, backend: Any = None):
        self.completer = completer
        self.backend = backend or readline
        self.matches: list[str] = []

    def history(self) -> list[str]:
        backend = self.backend
        entries = (backend.get_history_item(i) for i in range(1, backend.get_current_history_length() + 1))
        return [entry for entry in entries if entry]

    def complete(self, text: str, state: int) -> Optional[str]:
        if state == 0:
            self.completer.history = self.history()
            line = self.backend.get_line_buffer()
            self.matches = self.completer.complete(line, self.backend.get_endidx())
        if state < len(self.matches):
            return self.matches[state]
        return None

    def install(self) -> None:
        backend = self.backend
        backend.set_completer_delims("")
        backend.set_completer(self.complete)
        if "libedit" in (getattr(backend, "__doc__", None) or ""):
            backend.parse_and_bind("bind ^I rl_complete")
        else:
            backend.parse_and_bind("tab: complete")


def _attach_completion(shell: Shell) -> None:
    if readline is None:
        return
    completer = Completer(
        shell.scope,
        shell.interpreter.registry.names(),
        cwd=lambda: shell.cwd,
    )
    ReadlineCompletion(completer).install()


def run_script(shell: Shell, source: str) -> int:
    return shell.run(source).exit_code


def run_interactive(shell: Shell) -> int:
    """Read-evaluate-print loop; failures are reported and the loop goes on."""
    _attach_completion(shell)
    asyncio.run(shell.start_eval_loop())
    exit_code = 0
    while not shell.exited:
        try:
            line = input(render_prompt(shell.scope, shell.cwd))
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print()
            print(LEAVE_HINT)
            continue
        if not line.strip():
            continue
        result = shell.run(line)
        exit_code = result.exit_code
        if result.value is not None and not isinstance(result.value, Status):
            print(format_value(result.value))
    return exit_code


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the shmy command line.

    Args:
        argv: Command-line arguments (default: sys.argv[1:]).

    Returns:
        The exit status.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command is not None and args.script is not None:
        parser.error("cannot specify -c command and scripts at the same time")

    interactive = args.command is None and args.script is None and sys.stdin.isatty()
    shell = console_shell(interactive=interactive, handle_interrupts=True)
    _attach_confirm(shell)

    try:
        if args.command is not None:
            if not args.command:
                parser.error("-c requires a command")
            return run_script(shell, " ".join(args.command))

        if args.script is not None:
            try:
                with open(args.script, encoding="utf-8") as f:
                    source = f.read()
            except OSError as e:
                print(f"{args.script}: {e.strerror}", file=sys.stderr)
                return EXIT_USAGE
            shell.set_arguments(args.script, args.args)
            return run_script(shell, source)

        if interactive:
            return run_interactive(shell)
        return run_script(shell, sys.stdin.read())
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
