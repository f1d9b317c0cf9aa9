"""AST types for shmy."""

from .types import (
    AssignmentNode,
    BinaryOpNode,
    BlockNode,
    BreakNode,
    CommandNode,
    ContinueNode,
    ForNode,
    IfNode,
    LiteralNode,
    Node,
    PipelineNode,
    RedirectNode,
    ScriptNode,
    UnaryOpNode,
    WhileNode,
)

__all__ = [
    "AssignmentNode",
    "BinaryOpNode",
    "BlockNode",
    "BreakNode",
    "CommandNode",
    "ContinueNode",
    "ForNode",
    "IfNode",
    "LiteralNode",
    "Node",
    "PipelineNode",
    "RedirectNode",
    "ScriptNode",
    "UnaryOpNode",
    "WhileNode",
]
