"""AST node types for the shmy language.

One tree is built per statement sequence (a script, or one interactive
line) and discarded after evaluation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from ..interpreter.errors import Location


@dataclass
class LiteralNode:
    """A word: plain text, quoted string, or raw string.

    Variable references are literals whose text contains `$NAME` forms.
    """

    text: str
    quoted: bool = False
    """True if any part of the word was double-quoted (no glob or tilde expansion)."""
    raw: bool = False
    """Raw strings are used verbatim (no variable expansion)."""
    pos: Location = field(default_factory=Location)


@dataclass
class AssignmentNode:
    """`name = expr`, `$name = expr` (existing binding) or `$name =` (erase)."""

    name: str
    value: Optional["Node"]
    existing: bool = False
    """True for `$name = ...`: assign to the binding found up the scope chain."""
    pos: Location = field(default_factory=Location)


@dataclass
class BinaryOpNode:
    """Arithmetic, comparison or logical operation."""

    op: str
    left: "Node"
    right: "Node"
    pos: Location = field(default_factory=Location)


@dataclass
class UnaryOpNode:
    """Negation (`-`) or logical not (`!`)."""

    op: str
    operand: "Node"
    pos: Location = field(default_factory=Location)


@dataclass
class CommandNode:
    """Invocation of a built-in or external command."""

    name: str
    args: list["Node"] = field(default_factory=list)
    text: str = ""
    """Source text of the invocation, used in error reports and $__errors."""
    pos: Location = field(default_factory=Location)


@dataclass
class PipelineNode:
    """`e1 | e2 | ...`; `capture` names the variable of a trailing `| name` stage."""

    stages: list["Node"]
    capture: Optional[str] = None
    pos: Location = field(default_factory=Location)


@dataclass
class RedirectNode:
    """`expr => target` (truncate) or `expr =>> target` (append)."""

    expr: "Node"
    target: "Node"
    append: bool = False
    pos: Location = field(default_factory=Location)


@dataclass
class BlockNode:
    """A parenthesized statement sequence, evaluated in a new scope."""

    statements: list["Node"] = field(default_factory=list)
    pos: Location = field(default_factory=Location)


@dataclass
class ScriptNode:
    """Top-level statement sequence, evaluated in the caller's scope."""

    statements: list["Node"] = field(default_factory=list)
    pos: Location = field(default_factory=Location)


@dataclass
class IfNode:
    condition: "Node"
    body: BlockNode
    else_body: Optional[BlockNode] = None
    pos: Location = field(default_factory=Location)


@dataclass
class WhileNode:
    condition: "Node"
    body: BlockNode
    pos: Location = field(default_factory=Location)


@dataclass
class ForNode:
    variable: str
    items: list["Node"]
    body: BlockNode
    pos: Location = field(default_factory=Location)


@dataclass
class BreakNode:
    pos: Location = field(default_factory=Location)


@dataclass
class ContinueNode:
    pos: Location = field(default_factory=Location)


Node = Union[
    LiteralNode,
    AssignmentNode,
    BinaryOpNode,
    UnaryOpNode,
    CommandNode,
    PipelineNode,
    RedirectNode,
    BlockNode,
    ScriptNode,
    IfNode,
    WhileNode,
    ForNode,
    BreakNode,
    ContinueNode,
]
