"""Parser for the shmy language.

Converts a token sequence into an AST using recursive descent parsing.

Precedence, loosest first:
    statement sequence  `;`
    assignment          `name = expr` (right associative)
    redirect            `expr => file`, `expr =>> file`
    logical             `&&` `||`
    pipeline            `|`
    comparison          `==` `!=` `<` `<=` `>` `>=`
    additive            `+` `-`
    multiplicative      `*` `/` `//` `%`
    unary               `-` `!`
    primary             block, if/while/for, command, literal

Command arguments end at the first operator, so `cmd 2 + 2` is `(cmd 2) + 2`.

The `-`, `/` and `*` characters are word characters. Whether they act as
operators is decided here, from lexical position only: after a complete
operand a standalone `*`, `/`, `//` or `-` is an operator, and a word that
starts with `-` or `/` is split into the operator and its right operand.
Inside argument lists they are always plain arguments. So `$x * $y` is a
multiplication while `$x*$y` is a single word.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Callable, Optional

from ..ast.types import (
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
from ..interpreter.errors import ParseError
from .lexer import Token, TokenType, tokenize

logger = logging.getLogger(__name__)

KEYWORDS = frozenset({"if", "else", "while", "for", "in", "break", "continue"})

IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

COMPARISONS = {
    TokenType.EQ: "==",
    TokenType.NE: "!=",
    TokenType.LT: "<",
    TokenType.LE: "<=",
    TokenType.GT: ">",
    TokenType.GE: ">=",
}

# Tokens that end an argument list or an operand
TERMINATORS = frozenset({TokenType.SEMI, TokenType.RPAREN, TokenType.EOF})


def is_valid_name(name: str) -> bool:
    """Check if a string is a valid variable name."""
    return bool(IDENTIFIER.match(name))


def assignment_target(text: str) -> tuple[str, bool]:
    """Split an assignment target into (name, refers-to-existing-binding)."""
    if text.startswith("${") and text.endswith("}"):
        return text[2:-1], True
    if text.startswith("$"):
        return text[1:], True
    return text, False


class Parser:
    """Recursive descent parser for shmy source."""

    def __init__(
        self,
        tokens: list[Token],
        source: str = "",
        is_command: Optional[Callable[[str], bool]] = None,
    ):
        self.tokens = tokens
        self.source = source
        self.pos = 0
        self.is_command = is_command or (lambda name: False)

    def peek(self, offset: int = 0) -> Token:
        """Look at token at current position + offset."""
        idx = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[idx]

    def advance(self) -> Token:
        """Advance and return current token."""
        tok = self.peek()
        if tok.type != TokenType.EOF:
            self.pos += 1
        return tok

    def check(self, *types: TokenType) -> bool:
        """Check if current token is of any of the given types."""
        return self.peek().type in types

    def match(self, *types: TokenType) -> Optional[Token]:
        """If current token matches any type, advance and return it."""
        if self.check(*types):
            return self.advance()
        return None

    def check_keyword(self, keyword: str, offset: int = 0) -> bool:
        tok = self.peek(offset)
        return tok.type == TokenType.WORD and not tok.quoted and tok.value.lower() == keyword

    def error(self, message: str, tok: Optional[Token] = None) -> ParseError:
        return ParseError(message, (tok or self.peek()).pos)

    def parse(self) -> ScriptNode:
        """Parse the whole token stream."""
        start = self.peek()
        statements = self.parse_statements()
        if not self.check(TokenType.EOF):
            raise self.error(f"Unexpected token: {self.peek().value}")
        return ScriptNode(statements, pos=start.pos)

    def parse_statements(self) -> list[Node]:
        """Parse `;`-separated statements up to `)` or end of input."""
        statements: list[Node] = []
        while True:
            while self.match(TokenType.SEMI):
                pass
            if self.check(TokenType.RPAREN, TokenType.EOF):
                return statements
            statements.append(self.parse_statement())
            if self.check(TokenType.ASSIGN):
                raise self.error("Identifier expected on left hand-side of assignment")
            if not self.check(*TERMINATORS):
                raise self.error(f"Unexpected token: {self.peek().value}")

    def parse_statement(self) -> Node:
        return self.parse_assignment()

    def parse_assignment(self) -> Node:
        """Parse `name = expr`, `$name = expr`, `$name =` or a plain expression."""
        tok = self.peek()
        if tok.type == TokenType.WORD and not tok.quoted and self.peek(1).type == TokenType.ASSIGN:
            name, existing = assignment_target(tok.value)
            if not is_valid_name(name):
                raise self.error("Identifier expected on left hand-side of assignment", tok)
            self.advance()
            self.advance()
            if self.check(*TERMINATORS):
                if not existing:
                    raise self.error("Expecting right hand-side expression")
                return AssignmentNode(name, None, existing=True, pos=tok.pos)
            value = self.parse_assignment()
            return AssignmentNode(name, value, existing=existing, pos=tok.pos)
        return self.parse_redirect()

    def parse_redirect(self) -> Node:
        expr = self.parse_logical()
        while True:
            op = self.match(TokenType.REDIRECT, TokenType.APPEND)
            if op is None:
                return expr
            if not self.check(TokenType.WORD, TokenType.LPAREN):
                raise self.error("Expecting redirect target")
            target = self.parse_arg()
            expr = RedirectNode(expr, target, append=op.type == TokenType.APPEND, pos=op.pos)

    def parse_logical(self) -> Node:
        """Parse `&&` / `||` (left associative, equal precedence)."""
        left = self.parse_pipeline()
        while True:
            op = self.match(TokenType.AND, TokenType.OR)
            if op is None:
                return left
            right = self.parse_pipeline()
            left = BinaryOpNode(op.value, left, right, pos=op.pos)

    def parse_pipeline(self) -> Node:
        first = self.peek()
        stages = [self.parse_comparison()]
        while self.match(TokenType.PIPE):
            stages.append(self.parse_comparison())
        if len(stages) == 1:
            return stages[0]

        capture = None
        last = stages[-1]
        if isinstance(last, LiteralNode) and not last.quoted and is_valid_name(last.text):
            capture = last.text
            stages.pop()
        return PipelineNode(stages, capture=capture, pos=first.pos)

    def parse_comparison(self) -> Node:
        left = self.parse_additive()
        tok = self.peek()
        if tok.type in COMPARISONS:
            self.advance()
            right = self.parse_additive()
            return BinaryOpNode(COMPARISONS[tok.type], left, right, pos=tok.pos)
        return left

    def parse_additive(self) -> Node:
        left = self.parse_multiplicative()
        while True:
            tok = self.peek()
            if self.match(TokenType.PLUS):
                op = "+"
            else:
                op = self.take_word_operator(("-",))
                if op is None:
                    return left
            right = self.parse_multiplicative()
            left = BinaryOpNode(op, left, right, pos=tok.pos)

    def parse_multiplicative(self) -> Node:
        left = self.parse_unary()
        while True:
            tok = self.peek()
            if self.match(TokenType.MOD):
                op = "%"
            else:
                op = self.take_word_operator(("//", "/", "*"))
                if op is None:
                    return left
            right = self.parse_unary()
            left = BinaryOpNode(op, left, right, pos=tok.pos)

    def take_word_operator(self, operators: tuple[str, ...]) -> Optional[str]:
        """Consume an arithmetic operator spelled as (the start of) a word.

        A standalone word equal to the operator is consumed whole; a word
        that starts with `-` or `/` is split, leaving the remainder as the
        next token (`$i -1` subtracts 1). `*` is only an operator on its own,
        written `*` or `\\*`.
        """
        tok = self.peek()
        if tok.type != TokenType.WORD or tok.quoted or not tok.value:
            return None
        if "*" in operators and tok.value == "\\*":
            self.advance()
            return "*"
        for op in operators:
            if tok.value == op:
                self.advance()
                return op
            if op != "*" and tok.value.startswith(op):
                rest = tok.value[len(op):]
                self.tokens[self.pos] = replace(tok, value=rest, start=tok.start + len(op))
                return op
        return None

    def parse_unary(self) -> Node:
        tok = self.peek()
        if self.match(TokenType.NOT):
            return UnaryOpNode("!", self.parse_unary(), pos=tok.pos)
        if tok.type == TokenType.WORD and not tok.quoted and tok.value == "-":
            self.advance()
            return UnaryOpNode("-", self.parse_unary(), pos=tok.pos)
        return self.parse_primary()

    def parse_primary(self) -> Node:
        tok = self.peek()

        if tok.type == TokenType.LPAREN:
            return self.parse_block()

        if tok.type != TokenType.WORD:
            if tok.type in TERMINATORS:
                raise self.error("Expecting right hand-side expression")
            raise self.error(f"Unexpected token: {tok.value}")

        if not tok.quoted:
            keyword = tok.value.lower()
            if keyword == "if":
                return self.parse_if()
            if keyword == "while":
                return self.parse_while()
            if keyword == "for":
                return self.parse_for()
            if keyword == "break":
                self.advance()
                return BreakNode(pos=tok.pos)
            if keyword == "continue":
                self.advance()
                return ContinueNode(pos=tok.pos)
            if keyword == "else":
                raise self.error("ELSE without IF")
            if keyword == "in":
                raise self.error("IN without FOR")
            if (
                not tok.value.startswith("$")
                and self.peek(1).type != TokenType.ASSIGN
                and self.is_command(tok.value)
            ):
                return self.parse_command()

        self.advance()
        return self.literal(tok)

    def literal(self, tok: Token) -> LiteralNode:
        return LiteralNode(tok.value, quoted=tok.quoted, raw=tok.raw, pos=tok.pos)

    def parse_block(self) -> BlockNode:
        """Parse `( statements )`."""
        open_tok = self.advance()
        statements = self.parse_statements()
        if not self.match(TokenType.RPAREN):
            raise self.error("Expecting right parenthesis", open_tok)
        return BlockNode(statements, pos=open_tok.pos)

    def parse_body(self, construct: str) -> BlockNode:
        if not self.check(TokenType.LPAREN):
            raise self.error(f"Parentheses are required around {construct} body")
        return self.parse_block()

    def parse_arg(self) -> Node:
        if self.check(TokenType.LPAREN):
            return self.parse_block()
        return self.literal(self.advance())

    def parse_args(self) -> list[Node]:
        """Parse command (or FOR list) arguments: words and blocks."""
        args: list[Node] = []
        while self.check(TokenType.WORD, TokenType.LPAREN):
            args.append(self.parse_arg())
        return args

    def parse_command(self) -> CommandNode:
        name_tok = self.advance()
        args = self.parse_args()
        end = self.tokens[self.pos - 1].end
        text = self.source[name_tok.start:end] if self.source else name_tok.value
        return CommandNode(name_tok.value, args, text=text, pos=name_tok.pos)

    def parse_if(self) -> IfNode:
        if_tok = self.advance()
        condition = self.parse_unary()
        body = self.parse_body("IF")
        else_body = None
        if self.check_keyword("else"):
            self.advance()
            else_body = self.parse_body("ELSE")
        return IfNode(condition, body, else_body, pos=if_tok.pos)

    def parse_while(self) -> WhileNode:
        while_tok = self.advance()
        condition = self.parse_unary()
        body = self.parse_body("WHILE")
        return WhileNode(condition, body, pos=while_tok.pos)

    def parse_for(self) -> ForNode:
        for_tok = self.advance()
        var_tok = self.peek()
        if (
            var_tok.type != TokenType.WORD
            or var_tok.quoted
            or not is_valid_name(var_tok.value)
            or var_tok.value.lower() in KEYWORDS
        ):
            raise self.error("Expecting identifier in FOR expression")
        self.advance()
        if not self.check_keyword("in"):
            raise self.error("Expecting IN after FOR variable")
        self.advance()
        items = self.parse_args()
        if not self.match(TokenType.SEMI):
            raise self.error("Expecting ; after FOR list")
        body = self.parse_body("FOR")
        return ForNode(var_tok.value, items, body, pos=for_tok.pos)


def parse(source: str, is_command: Optional[Callable[[str], bool]] = None) -> ScriptNode:
    """Parse shmy source text into a ScriptNode.

    Args:
        source: The source text.
        is_command: Predicate telling whether a bare word names a command.

    Raises:
        LexError: On malformed tokens or unterminated literals.
        ParseError: On grammar violations.
    """
    tokens = tokenize(source)
    ast = Parser(tokens, source, is_command).parse()
    logger.debug("parsed %d statements", len(ast.statements))
    return ast
