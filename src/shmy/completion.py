"""Tab completion.

Completer.complete() returns candidate replacements for the text before the
cursor. Sources are tried in order and the first one with candidates wins:
1. History expansion: `!prefix` -> previous lines starting with prefix
2. Variables: a word starting with `$` -> visible variable names
3. Dictionary: user-defined commands -> subcommands -> options
4. File system paths (relative to the working directory)
5. Built-in command names and keywords, for the first word of the line

The dictionary is an already-loaded mapping, for example:

    {"commands": [
        {"name": "git", "subcommands": [
            {"name": "commit", "options": ["amend", "no-verify"]},
            {"name": "clone", "options": ["depth", "branch"]},
        ]},
    ]}
"""

from __future__ import annotations

import glob
import os
from typing import Any, Callable, Iterable, Optional, Sequence

from .interpreter.scope import Scope
from .interpreter.types import format_value
from .parser import KEYWORDS

LEVELS = ("commands", "subcommands", "options")


def _element_name(element: Any) -> str:
    if isinstance(element, dict):
        return str(element.get("name", "")).strip()
    return str(element).strip()


def _elements(node: Any, level: str) -> Optional[list]:
    if isinstance(node, dict) and isinstance(node.get(level), list):
        return node[level]
    return None


def suggest(dictionary: Any, line: str) -> list[str]:
    """Suggest completions of line from a commands -> subcommands -> options dictionary.

    Suggestions are whole lines: "git c" gives ["git commit", "git clone"].
    A complete command or subcommand lists everything one level down; the
    last level keeps matching any further words, so several options can be
    completed one after another.
    """
    parts = line.split()
    current = dictionary
    prefix: list[str] = []
    suggestions: list[str] = []

    for i, level in enumerate(LEVELS):
        elements = _elements(current, level)
        if elements is None:
            continue
        if i >= len(parts):
            if prefix:
                head = " ".join(prefix)
                suggestions.extend(f"{head} {_element_name(e)}" for e in elements)
            break

        part = parts[i]
        j = i + 1
        while True:
            for element in elements:
                name = _element_name(element)
                if part == name:
                    prefix.append(part)
                    current = element
                    break
                if name.startswith(part):
                    suggestions.append(f"{' '.join(prefix)} {name}" if prefix else name)
            # Only the last level matches the remaining words
            if j < len(LEVELS) or j >= len(parts):
                break
            part = parts[j]
            j += 1

    return suggestions


def escape_backslashes(text: str) -> str:
    """Double single backslashes (inside quotes a backslash starts an escape)."""
    result: list[str] = []
    i = 0
    while i < len(text):
        if text[i] == "\\":
            result.append("\\\\")
            i += 2 if text[i + 1:i + 2] == "\\" else 1
        else:
            result.append(text[i])
            i += 1
    return "".join(result)


class Completer:
    """Completion callback for a line editor."""

    def __init__(
        self,
        scope: Scope,
        commands: Iterable[str] = (),
        history: Optional[Sequence[str]] = None,
        dictionary: Any = None,
        cwd: Optional[Callable[[], str]] = None,
    ):
        self.scope = scope
        self.commands = sorted(set(commands) | set(KEYWORDS) | {"exit", "quit"})
        self.history = history if history is not None else []
        self.dictionary = dictionary
        self.cwd = cwd or os.getcwd

    def complete(self, text: str, cursor: Optional[int] = None) -> list[str]:
        """Return candidate lines replacing text[:cursor]."""
        line = text if cursor is None else text[:cursor]
        for source in (
            self.complete_history,
            self.complete_variable,
            self.complete_dictionary,
            self.complete_path,
            self.complete_command,
        ):
            candidates = source(line)
            if candidates:
                return candidates
        return []

    def complete_history(self, line: str) -> list[str]:
        if not line.startswith("!"):
            return []
        prefix = line[1:]
        seen: list[str] = []
        for entry in reversed(self.history):
            if entry.startswith(prefix) and entry not in seen:
                seen.append(entry)
        return seen

    def complete_variable(self, line: str) -> list[str]:
        head, word = _split_last_word(line)
        if not word.startswith("$"):
            return []
        name = word[2:] if word.startswith("${") else word[1:]
        opening = "${" if word.startswith("${") else "$"
        closing = "}" if opening == "${" else ""
        return [f"{head}{opening}{n}{closing}" for n in self.scope.names_starting_with(name)]

    def complete_dictionary(self, line: str) -> list[str]:
        if self.dictionary is None:
            return []
        return suggest(self.dictionary, line)

    def complete_path(self, line: str) -> list[str]:
        head, word = _split_last_word(line)
        if not head and not word:
            return []
        if word == "~":
            home = self.scope.get("HOME")
            return [] if home is None else [head + format_value(home)]

        expanded = word
        if word.startswith("~"):
            home = self.scope.get("HOME")
            if home is not None:
                expanded = format_value(home) + word[1:]
        root = self.cwd()
        matches = []
        for match in sorted(glob.glob(glob.escape(expanded) + "*", root_dir=root)):
            if os.path.isdir(os.path.join(root, match)):
                match += os.sep
            if expanded != word:
                match = word + match[len(expanded):]
            if '"' in line:
                match = escape_backslashes(match)
            matches.append(head + match)
        return matches

    def complete_command(self, line: str) -> list[str]:
        if not line or any(c.isspace() for c in line):
            return []
        return [f"{name} " for name in self.commands if name.startswith(line) and name != line]


def _split_last_word(line: str) -> tuple[str, str]:
    """Split line into (everything before the last word, the last word)."""
    i = len(line)
    while i > 0 and not line[i - 1].isspace():
        i -= 1
    return line[:i], line[i:]
