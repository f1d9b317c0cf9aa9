"""Parser module for shmy."""

from .lexer import (
    Lexer,
    Token,
    TokenType,
    tokenize,
    is_numeric,
)
from .parser import (
    KEYWORDS,
    Parser,
    is_valid_name,
    parse,
)

__all__ = [
    # Lexer
    "Lexer",
    "Token",
    "TokenType",
    "tokenize",
    "is_numeric",
    # Parser
    "KEYWORDS",
    "Parser",
    "is_valid_name",
    "parse",
]
