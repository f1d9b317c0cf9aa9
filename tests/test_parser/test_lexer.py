"""Tests for the lexer."""

import pytest
from shmy.interpreter.errors import LexError
from shmy.parser import TokenType, is_numeric, tokenize


def kinds(source):
    return [tok.type for tok in tokenize(source)]


def values(source):
    return [tok.value for tok in tokenize(source) if tok.type != TokenType.EOF]


class TestWords:
    """Test word tokens."""

    def test_plain_words(self):
        assert values("echo hello world") == ["echo", "hello", "world"]

    def test_eof_token(self):
        tokens = tokenize("")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_quoted_word(self):
        tokens = tokenize('"hello world"')
        assert tokens[0].value == "hello world"
        assert tokens[0].quoted

    def test_partially_quoted_word(self):
        tokens = tokenize('abc"d e"f')
        assert tokens[0].value == "abcd ef"
        assert tokens[0].quoted

    def test_escapes_in_quotes(self):
        assert values(r'"a\tb\nc\"d\\e"') == ['a\tb\nc"d\\e']

    def test_backslash_outside_quotes_is_verbatim(self):
        assert values(r"C:\Users\foo") == [r"C:\Users\foo"]

    def test_dash_and_slash_are_word_characters(self):
        assert values("ls -la /tmp/x-y") == ["ls", "-la", "/tmp/x-y"]

    def test_numeric_prefix_splits_at_operator(self):
        assert values("5-1") == ["5", "-1"]
        assert values("6/3") == ["6", "/3"]

    def test_non_numeric_prefix_keeps_dash(self):
        assert values("foo-bar") == ["foo-bar"]

    def test_star_is_a_word_character(self):
        assert values("$x*$y") == ["$x*$y"]


class TestOperators:
    """Test operator tokens."""

    def test_longest_match(self):
        assert kinds("=>> => == = != !")[:-1] == [
            TokenType.APPEND,
            TokenType.REDIRECT,
            TokenType.EQ,
            TokenType.ASSIGN,
            TokenType.NE,
            TokenType.NOT,
        ]

    def test_logical_and_pipe(self):
        assert kinds("a && b || c | d")[:-1] == [
            TokenType.WORD,
            TokenType.AND,
            TokenType.WORD,
            TokenType.OR,
            TokenType.WORD,
            TokenType.PIPE,
            TokenType.WORD,
        ]

    def test_comparisons(self):
        assert kinds("< <= > >=")[:-1] == [TokenType.LT, TokenType.LE, TokenType.GT, TokenType.GE]

    def test_operators_end_words(self):
        assert values("2+2") == ["2", "+", "2"]
        assert values("x=1;y") == ["x", "=", "1", ";", "y"]

    def test_single_ampersand_is_an_error(self):
        with pytest.raises(LexError, match="Unexpected character: &"):
            tokenize("a & b")


class TestComments:
    """Test comment handling."""

    def test_comment_to_end_of_line(self):
        assert values("x = hey#world\ny") == ["x", "=", "hey", "y"]

    def test_hash_in_quotes(self):
        assert values('"hey#world"') == ["hey#world"]


class TestRawStrings:
    """Test raw strings."""

    def test_raw_string_body(self):
        tokens = tokenize('r"(_;)( " )"')
        assert tokens[0].value == '_;)( " '
        assert tokens[0].raw
        assert tokens[0].quoted

    def test_raw_string_keeps_backslashes(self):
        assert values(r'r"(a\nb)"') == [r"a\nb"]

    def test_unterminated_raw_string(self):
        with pytest.raises(LexError, match="Unterminated raw string"):
            tokenize('r"(abc')


class TestLexErrors:
    """Test lexical errors and their locations."""

    def test_unterminated_quote(self):
        with pytest.raises(LexError, match="Unterminated quoted string"):
            tokenize('echo "abc')

    def test_unmatched_right_paren(self):
        with pytest.raises(LexError, match="Unmatched right parenthesis") as info:
            tokenize("echo x)")
        assert info.value.pos.line == 1
        assert info.value.pos.col == 6

    def test_unmatched_left_paren(self):
        with pytest.raises(LexError, match="Unmatched left parenthesis"):
            tokenize("(echo x")

    def test_locations(self):
        tokens = tokenize("a\n  bc")
        assert (tokens[0].pos.line, tokens[0].pos.col) == (1, 0)
        assert (tokens[1].pos.line, tokens[1].pos.col) == (2, 2)

    def test_offsets(self):
        tokens = tokenize("echo  abc")
        assert (tokens[1].start, tokens[1].end) == (6, 9)


class TestIsNumeric:
    """Test numeric detection."""

    def test_numbers(self):
        assert is_numeric("5")
        assert is_numeric("-3.5")
        assert is_numeric("1e3")

    def test_not_numbers(self):
        assert not is_numeric("abc")
        assert not is_numeric("1_000")
        assert not is_numeric("inf")
        assert not is_numeric("nan")
