"""Lexer for the shmy language.

Turns raw source text into a flat list of tokens:
- words (plain, double-quoted, or raw `r"( ... )"` strings)
- operators: `( ) ; + % | || && ! != = == => =>> < <= > >=`

Quoting rules:
- Double quotes toggle quoting inside a word; inside quotes a backslash
  escapes the next character (`\\n`, `\\t`, `\\r` become control characters).
- Outside quotes a backslash is kept verbatim, so Windows paths and glob
  escapes survive until expansion.
- `#` outside quotes starts a comment running to the end of the line.
- `-` and `/` are word characters, except right after an unquoted numeric
  prefix (so `5-1` and `6/3` lex as separate numbers and operators).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto

from ..interpreter.errors import LexError, Location

logger = logging.getLogger(__name__)


class TokenType(Enum):
    WORD = auto()
    LPAREN = auto()
    RPAREN = auto()
    SEMI = auto()
    PIPE = auto()
    AND = auto()
    OR = auto()
    NOT = auto()
    ASSIGN = auto()
    EQ = auto()
    NE = auto()
    LT = auto()
    LE = auto()
    GT = auto()
    GE = auto()
    PLUS = auto()
    MOD = auto()
    REDIRECT = auto()
    APPEND = auto()
    EOF = auto()


@dataclass
class Token:
    type: TokenType
    value: str
    pos: Location = field(default_factory=Location)
    start: int = 0
    """Offset of the first character in the source."""
    end: int = 0
    """Offset just past the last character in the source."""
    quoted: bool = False
    raw: bool = False


# Longest operators first
OPERATORS: list[tuple[str, TokenType]] = [
    ("=>>", TokenType.APPEND),
    ("=>", TokenType.REDIRECT),
    ("==", TokenType.EQ),
    ("!=", TokenType.NE),
    ("<=", TokenType.LE),
    (">=", TokenType.GE),
    ("&&", TokenType.AND),
    ("||", TokenType.OR),
    ("=", TokenType.ASSIGN),
    ("!", TokenType.NOT),
    ("<", TokenType.LT),
    (">", TokenType.GT),
    ("|", TokenType.PIPE),
    ("+", TokenType.PLUS),
    ("%", TokenType.MOD),
    ("(", TokenType.LPAREN),
    (")", TokenType.RPAREN),
    (";", TokenType.SEMI),
]

DELIMITERS = frozenset(" \t\r\n()=;|&<>!+%#")

ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}

RAW_OPEN = 'r"('
RAW_CLOSE = ')"'


def is_numeric(text: str) -> bool:
    """Check if text parses as an integer or real number."""
    try:
        float(text)
    except ValueError:
        return False
    if text.strip() != text or "_" in text:
        return False
    return text.lstrip("+-").lower() not in ("inf", "nan", "infinity")


class Lexer:
    """Tokenizer for shmy source text."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.depth = 0
        self.tokens: list[Token] = []

    def location(self, offset: int) -> Location:
        """Compute the line/column location of a source offset."""
        line = self.source.count("\n", 0, offset) + 1
        line_start = self.source.rfind("\n", 0, offset) + 1
        return Location(line, offset - line_start)

    def peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        return self.source[idx] if idx < len(self.source) else ""

    def tokenize(self) -> list[Token]:
        """Tokenize the whole source."""
        while True:
            self.skip_whitespace_and_comments()
            if self.pos >= len(self.source):
                break
            if self.source.startswith(RAW_OPEN, self.pos):
                self.read_raw_string()
            elif self.peek() in DELIMITERS:
                self.read_operator()
            else:
                self.read_word()

        if self.depth > 0:
            raise LexError("Unmatched left parenthesis", self.location(len(self.source)))

        end = len(self.source)
        self.tokens.append(Token(TokenType.EOF, "", self.location(end), end, end))
        return self.tokens

    def skip_whitespace_and_comments(self) -> None:
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch.isspace():
                self.pos += 1
            elif ch == "#":
                newline = self.source.find("\n", self.pos)
                self.pos = len(self.source) if newline < 0 else newline
            else:
                break

    def read_operator(self) -> None:
        start = self.pos
        for text, token_type in OPERATORS:
            if self.source.startswith(text, start):
                self.pos += len(text)
                if token_type == TokenType.LPAREN:
                    self.depth += 1
                elif token_type == TokenType.RPAREN:
                    self.depth -= 1
                    if self.depth < 0:
                        raise LexError("Unmatched right parenthesis", self.location(start))
                self.tokens.append(Token(token_type, text, self.location(start), start, self.pos))
                return
        raise LexError(f"Unexpected character: {self.peek()}", self.location(start))

    def read_raw_string(self) -> None:
        start = self.pos
        body_start = start + len(RAW_OPEN)
        close = self.source.find(RAW_CLOSE, body_start)
        if close < 0:
            raise LexError("Unterminated raw string", self.location(start))
        self.pos = close + len(RAW_CLOSE)
        self.tokens.append(
            Token(
                TokenType.WORD,
                self.source[body_start:close],
                self.location(start),
                start,
                self.pos,
                quoted=True,
                raw=True,
            )
        )

    def read_word(self) -> None:
        start = self.pos
        chars: list[str] = []
        quoted = False
        in_quotes = False

        while self.pos < len(self.source):
            ch = self.source[self.pos]

            if in_quotes:
                if ch == '"':
                    in_quotes = False
                    self.pos += 1
                elif ch == "\\" and self.pos + 1 < len(self.source):
                    nxt = self.source[self.pos + 1]
                    chars.append(ESCAPES.get(nxt, nxt))
                    self.pos += 2
                else:
                    chars.append(ch)
                    self.pos += 1
                continue

            if ch == '"':
                in_quotes = True
                quoted = True
                self.pos += 1
                continue

            if ch.isspace() or ch in DELIMITERS:
                break

            # 5-1, 6/3: a numeric prefix ends at the operator
            if ch in "-/" and chars and not quoted and is_numeric("".join(chars)):
                break

            chars.append(ch)
            self.pos += 1

        if in_quotes:
            raise LexError("Unterminated quoted string", self.location(start))

        self.tokens.append(
            Token(
                TokenType.WORD,
                "".join(chars),
                self.location(start),
                start,
                self.pos,
                quoted=quoted,
            )
        )


def tokenize(source: str) -> list[Token]:
    """Tokenize shmy source text."""
    tokens = Lexer(source).tokenize()
    logger.debug("tokenized %d tokens", len(tokens))
    return tokens
