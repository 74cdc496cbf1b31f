"""Tests for the tokenizer."""

from __future__ import annotations

import pytest

from sdfscript.errors import LexError
from sdfscript.lexer import (
    BUILTIN_MNEMONICS,
    CANONICAL_MNEMONICS,
    Lexer,
    Token,
    TokenType,
    lex,
    tokenize,
)
from sdfscript.nodes import FunctionName


def _types(text: str) -> list[TokenType]:
    return [tok.type for tok in lex(text)]


class TestBasicTokens:
    def test_simple_expression(self):
        assert lex("x+1.5") == [
            Token(TokenType.VARIABLE, "x", 0),
            Token(TokenType.OPERATOR, "+", 1),
            Token(TokenType.NUMBER, 1.5, 2),
        ]

    def test_whitespace_skipped(self):
        assert _types(" x \t*\n y ") == [
            TokenType.VARIABLE,
            TokenType.OPERATOR,
            TokenType.VARIABLE,
        ]

    def test_empty_input(self):
        assert lex("") == []

    def test_punctuation(self):
        assert _types("([{}]),;?:") == [
            TokenType.LPAREN,
            TokenType.LBRACKET,
            TokenType.LBRACE,
            TokenType.RBRACE,
            TokenType.RBRACKET,
            TokenType.RPAREN,
            TokenType.COMMA,
            TokenType.SEMICOLON,
            TokenType.QUESTION,
            TokenType.COLON,
        ]

    def test_positions_are_offsets(self):
        assert [tok.pos for tok in lex("ab = 12")] == [0, 3, 5]


class TestOperators:
    @pytest.mark.parametrize("op", ["==", "!=", ">=", "<=", "&&", "||", "**", "++", "--"])
    def test_two_char_operators(self, op):
        toks = lex(f"a{op}b")
        assert toks[1] == Token(TokenType.OPERATOR, op, 1)

    @pytest.mark.parametrize("op", ["+=", "-=", "*=", "/="])
    def test_compound_assignments(self, op):
        toks = lex(f"s{op}2")
        assert toks[1] == Token(TokenType.ASSIGN, op, 1)

    def test_plain_assignment(self):
        assert lex("s=2")[1] == Token(TokenType.ASSIGN, "=", 1)

    def test_longest_match(self):
        assert [tok.value for tok in lex("a**-b")] == ["a", "**", "-", "b"]

    def test_single_relational(self):
        assert [tok.value for tok in lex("a<b>c")] == ["a", "<", "b", ">", "c"]


class TestNumbers:
    @pytest.mark.parametrize(
        "literal, value",
        [("0", 0.0), ("42", 42.0), (".5", 0.5), ("5.", 5.0), ("3.25", 3.25)],
    )
    def test_number_forms(self, literal, value):
        assert lex(literal) == [Token(TokenType.NUMBER, value, 0)]

    def test_too_many_points(self):
        with pytest.raises(LexError, match="more than one decimal point") as exc:
            lex("x+1.2.3")
        assert exc.value.position == 2

    def test_lone_point(self):
        with pytest.raises(LexError, match="no digits"):
            lex("x.y")


class TestIdentifiers:
    def test_mnemonic_is_function(self):
        assert lex("B") == [Token(TokenType.FUNCTION, FunctionName.ABS, 0)]

    def test_long_name_is_function(self):
        assert lex("abs") == [Token(TokenType.FUNCTION, FunctionName.ABS, 0)]

    def test_longer_identifier_is_variable(self):
        assert lex("Bx") == [Token(TokenType.VARIABLE, "Bx", 0)]

    def test_digits_inside_identifier(self):
        assert lex("a0") == [Token(TokenType.VARIABLE, "a0", 0)]
        assert lex("r0") == [Token(TokenType.FUNCTION, FunctionName.ROT0, 0)]

    def test_mnemonics_are_case_sensitive(self):
        assert lex("g")[0].value == FunctionName.FAKE_SINE
        assert lex("G")[0].value == FunctionName.INTERSECT

    def test_unexpected_character(self):
        with pytest.raises(LexError, match="Unexpected character '#'") as exc:
            lex("x + #")
        assert exc.value.position == 4

    def test_non_ascii_letter_rejected(self):
        with pytest.raises(LexError, match="Unexpected character"):
            lex("é")


class TestMnemonicTables:
    def test_every_builtin_has_a_canonical_spelling(self):
        assert set(CANONICAL_MNEMONICS) == set(FunctionName)

    def test_canonical_spelling_lexes_back(self):
        for name, mnemonic in CANONICAL_MNEMONICS.items():
            assert BUILTIN_MNEMONICS[mnemonic] is name

    def test_canonical_is_first_spelling(self):
        assert CANONICAL_MNEMONICS[FunctionName.ABS] == "abs"
        assert CANONICAL_MNEMONICS[FunctionName.FRACT] == "fract"
        assert CANONICAL_MNEMONICS[FunctionName.ROUND_MAX] == "rG"
        assert CANONICAL_MNEMONICS[FunctionName.SMOOTH_ABS] == "sB"


class TestTokenize:
    def test_macros_expanded_first(self):
        assert [tok.value for tok in tokenize("@2{x,}")] == ["x", ",", "x", ","]

    def test_math_prefix_stripped(self):
        assert tokenize("Math.sin(x)")[0].value == FunctionName.SIN


class TestLexerCursor:
    def test_peek_does_not_advance(self):
        cursor = Lexer(lex("x y"))
        assert cursor.peek().value == "x"
        assert cursor.peek().value == "x"
        assert cursor.next().value == "x"
        assert cursor.next().value == "y"

    def test_eof_repeats(self):
        cursor = Lexer(lex("x"))
        cursor.next()
        assert cursor.next().type == TokenType.EOF
        assert cursor.next().type == TokenType.EOF
        assert cursor.peek().pos == 1

    def test_explicit_end(self):
        cursor = Lexer([], end=9)
        assert cursor.peek() == Token(TokenType.EOF, None, 9)
