"""Word expansion.

Handles:
- Variable expansion: $NAME, ${NAME}
- Substitution: ${NAME/pattern/replacement} (one regex replace of all matches)
- Tilde expansion: ~ and ~/path
- Glob expansion: *, ?, [...] (sorted; no match keeps the word)

An undefined variable expands to its own name (`$NAME`), never to an
empty string and never to an error.
"""

from __future__ import annotations

import glob
import re
from typing import TYPE_CHECKING, Callable, Optional

from .errors import EvalError
from .types import Value, format_value, infer_value

if TYPE_CHECKING:
    from ..ast.types import LiteralNode
    from .scope import Scope

NAME_CHARS = re.compile(r"[A-Za-z0-9_]+|[#@]")

SINGLE_REFERENCE = re.compile(r"^\$(?:([A-Za-z0-9_]+|[#@])|\{([A-Za-z0-9_]+|[#@])\})$")

GLOB_CHARS = re.compile(r"[*?\[]")


def find_closing_brace(text: str, start: int) -> int:
    """Find the `}` matching the `{` at text[start], or -1."""
    depth = 0
    for i in range(start, len(text)):
        if text[i] == "{":
            depth += 1
        elif text[i] == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def split_substitution(body: str) -> tuple[str, Optional[str], str]:
    """Split `NAME/pattern/replacement` into its parts.

    A backslash-escaped slash does not end the pattern.
    """
    if "/" not in body:
        return body, None, ""
    name, rest = body.split("/", 1)
    i = 0
    while i < len(rest):
        if rest[i] == "\\":
            i += 2
            continue
        if rest[i] == "/":
            return name, rest[:i], rest[i + 1:]
        i += 1
    return name, rest, ""


def substitute(value: str, pattern: str, replacement: str, var_name: str) -> str:
    """Replace every match of pattern in value."""
    try:
        return re.sub(pattern, replacement, value)
    except re.error as e:
        raise EvalError(f"Invalid substitution in ${{{var_name}}}: {e}") from e


def expand_variables(
    text: str,
    scope: "Scope",
    transform: Optional[Callable[[str], str]] = None,
) -> str:
    """Expand every $NAME, ${NAME} and ${NAME/pattern/replacement} in text."""
    result: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch != "$" or i + 1 >= len(text):
            result.append(ch)
            i += 1
            continue

        if text[i + 1] == "{":
            close = find_closing_brace(text, i + 1)
            if close < 0:
                result.append(ch)
                i += 1
                continue
            name, pattern, replacement = split_substitution(text[i + 2:close])
            i = close + 1
            value = scope.get(name) if name else None
            if value is None:
                result.append(f"${name}")
                continue
            expanded = format_value(value)
            if pattern is not None:
                # Backslashes in expanded values must not read as group references
                repl = expand_variables(replacement, scope, lambda s: s.replace("\\", "\\\\"))
                expanded = substitute(expanded, pattern, repl, name)
            result.append(transform(expanded) if transform else expanded)
            continue

        match = NAME_CHARS.match(text, i + 1)
        if match is None:
            result.append(ch)
            i += 1
            continue
        name = match.group(0)
        i = match.end()
        value = scope.get(name)
        if value is None:
            result.append(f"${name}")
        else:
            expanded = format_value(value)
            result.append(transform(expanded) if transform else expanded)

    return "".join(result)


def expand_word(node: "LiteralNode", scope: "Scope") -> Value:
    """Expand a literal to a value.

    A word that is exactly one variable reference yields the variable's
    value with its type. Other unquoted words have their type inferred
    from the expanded text; quoted and raw words are strings.
    """
    if node.raw:
        return node.text
    if not node.quoted:
        ref = SINGLE_REFERENCE.match(node.text)
        if ref:
            value = scope.get(ref.group(1) or ref.group(2))
            if value is not None:
                return value
    text = expand_variables(node.text, scope)
    if node.quoted:
        return text
    return infer_value(text)


def expand_tilde(text: str, scope: "Scope") -> str:
    """Replace a leading ~ with $HOME."""
    if text == "~" or text.startswith("~/") or text.startswith("~\\"):
        home = scope.get("HOME")
        if home is not None:
            return format_value(home) + text[1:]
    return text


def expand_glob(text: str, cwd: str) -> list[str]:
    """Expand a glob pattern relative to cwd; sorted, or [text] when nothing matches."""
    if not GLOB_CHARS.search(text):
        return [text]
    matches = sorted(glob.glob(text, root_dir=cwd))
    return matches or [text]


def expand_arg(node: "LiteralNode", text: str, scope: "Scope", cwd: str) -> list[str]:
    """Apply tilde and glob expansion to an expanded unquoted argument word."""
    if node.raw or node.quoted:
        return [text]
    return expand_glob(expand_tilde(text, scope), cwd)
