"""Tokenizer for macro-expanded sdfscript source."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sdfscript.errors import LexError
from sdfscript.nodes import FunctionName
from sdfscript.preprocessing import expand
from sdfscript.warning_policy import WarningPolicy


class TokenType(Enum):
    NUMBER = "number"
    OPERATOR = "operator"
    ASSIGN = "assign"
    LPAREN = "("
    RPAREN = ")"
    LBRACKET = "["
    RBRACKET = "]"
    LBRACE = "{"
    RBRACE = "}"
    COMMA = ","
    SEMICOLON = ";"
    QUESTION = "?"
    COLON = ":"
    FUNCTION = "function"
    VARIABLE = "variable"
    EOF = "eof"


@dataclass(frozen=True)
class Token:
    """One lexeme.

    ``value`` is a float for NUMBER, a FunctionName for FUNCTION, and the
    source text otherwise (None for EOF). ``pos`` is the offset into the
    expanded text.
    """

    type: TokenType
    value: float | str | FunctionName | None
    pos: int


# Short mnemonics and long names, in lookup order. The first spelling of a
# tag is its canonical spelling when source is regenerated.
BUILTIN_MNEMONICS: dict[str, FunctionName] = {
    "sin": FunctionName.SIN,
    "cos": FunctionName.COS,
    "tan": FunctionName.TAN,
    "atan2": FunctionName.ATAN2,
    "exp": FunctionName.EXP,
    "exp2": FunctionName.EXP2,
    "log": FunctionName.LOG,
    "log2": FunctionName.LOG2,
    "pow": FunctionName.POW,
    "sqrt": FunctionName.SQRT,
    "abs": FunctionName.ABS,
    "sign": FunctionName.SIGN,
    "floor": FunctionName.FLOOR,
    "ceil": FunctionName.CEIL,
    "fract": FunctionName.FRACT,
    "FR": FunctionName.FRACT,
    "mod": FunctionName.MOD,
    "min": FunctionName.MIN,
    "max": FunctionName.MAX,
    "cl": FunctionName.CLAMP,
    "mix": FunctionName.MIX,
    "B": FunctionName.ABS,
    "SM": FunctionName.SMOOTHSTEP,
    "L": FunctionName.LENGTH,
    "H": FunctionName.DISTANCE,
    "A": FunctionName.ADD_MUL,
    "D": FunctionName.DOT,
    "X": FunctionName.CROSS,
    "N": FunctionName.NORMALIZE,
    "U": FunctionName.UNION,
    "G": FunctionName.INTERSECT,
    "Z": FunctionName.FLOOR,
    "nz": FunctionName.VALUE_NOISE,
    "don": FunctionName.TORUS,
    "bx2": FunctionName.BOX2,
    "bx3": FunctionName.BOX3,
    "r0": FunctionName.ROT0,
    "r1": FunctionName.ROT1,
    "TR": FunctionName.TRIANGLE,
    "k": FunctionName.CORNER,
    "sB": FunctionName.SMOOTH_ABS,
    "scl": FunctionName.SMOOTH_CLAMP,
    "rG": FunctionName.ROUND_MAX,
    "rmax": FunctionName.ROUND_MAX,
    "rU": FunctionName.ROUND_MIN,
    "rmin": FunctionName.ROUND_MIN,
    "acos": FunctionName.ACOS,
    "asin": FunctionName.ASIN,
    "atan": FunctionName.ATAN,
    "sinh": FunctionName.SINH,
    "cosh": FunctionName.COSH,
    "tanh": FunctionName.TANH,
    "trunc": FunctionName.TRUNC,
    "asinh": FunctionName.ASINH,
    "acosh": FunctionName.ACOSH,
    "atanh": FunctionName.ATANH,
    "qB": FunctionName.POLY_SMOOTH_ABS,
    "sabs": FunctionName.SMOOTH_ABS,
    "round": FunctionName.ROUND,
    "qcl": FunctionName.POLY_SMOOTH_CLAMP,
    "g": FunctionName.FAKE_SINE,
    "ri": FunctionName.HASH,
    "rot": FunctionName.ROT,
}

CANONICAL_MNEMONICS: dict[FunctionName, str] = {}
for _mnemonic, _name in BUILTIN_MNEMONICS.items():
    CANONICAL_MNEMONICS.setdefault(_name, _mnemonic)

_missing = set(FunctionName) - set(CANONICAL_MNEMONICS)
if _missing:
    raise RuntimeError(f"No mnemonic for builtins: {sorted(n.name for n in _missing)}")

_NUMBER_CHARS = frozenset("0123456789.")

_TWO_CHAR_TOKENS: dict[str, TokenType] = {
    "==": TokenType.OPERATOR,
    "!=": TokenType.OPERATOR,
    ">=": TokenType.OPERATOR,
    "<=": TokenType.OPERATOR,
    "&&": TokenType.OPERATOR,
    "||": TokenType.OPERATOR,
    "**": TokenType.OPERATOR,
    "++": TokenType.OPERATOR,
    "--": TokenType.OPERATOR,
    "+=": TokenType.ASSIGN,
    "-=": TokenType.ASSIGN,
    "*=": TokenType.ASSIGN,
    "/=": TokenType.ASSIGN,
}

_ONE_CHAR_TOKENS: dict[str, TokenType] = {
    "+": TokenType.OPERATOR,
    "-": TokenType.OPERATOR,
    "*": TokenType.OPERATOR,
    "/": TokenType.OPERATOR,
    ">": TokenType.OPERATOR,
    "<": TokenType.OPERATOR,
    "=": TokenType.ASSIGN,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    ",": TokenType.COMMA,
    ";": TokenType.SEMICOLON,
    "?": TokenType.QUESTION,
    ":": TokenType.COLON,
}


def lex(text: str) -> list[Token]:
    """Split *text* into tokens (no trailing EOF).

    Raises:
        LexError: On an unknown character or a malformed number.
    """
    tokens: list[Token] = []
    pos = 0
    n = len(text)

    while pos < n:
        c = text[pos]

        if c.isspace():
            pos += 1
            continue

        pair = text[pos : pos + 2]
        if pair in _TWO_CHAR_TOKENS:
            tokens.append(Token(_TWO_CHAR_TOKENS[pair], pair, pos))
            pos += 2
            continue
        if c in _ONE_CHAR_TOKENS:
            tokens.append(Token(_ONE_CHAR_TOKENS[c], c, pos))
            pos += 1
            continue

        if c in _NUMBER_CHARS:
            end = pos
            while end < n and text[end] in _NUMBER_CHARS:
                end += 1
            tokens.append(_number_token(text[pos:end], pos))
            pos = end
            continue

        if c.isascii() and c.isalpha():
            end = pos + 1
            while end < n and text[end].isascii() and text[end].isalnum():
                end += 1
            name = text[pos:end]
            if name in BUILTIN_MNEMONICS:
                tokens.append(Token(TokenType.FUNCTION, BUILTIN_MNEMONICS[name], pos))
            else:
                tokens.append(Token(TokenType.VARIABLE, name, pos))
            pos = end
            continue

        raise LexError(f"Unexpected character {c!r}", pos)

    return tokens


def _number_token(literal: str, pos: int) -> Token:
    if literal.count(".") > 1:
        raise LexError(f"Malformed number {literal!r}: more than one decimal point", pos)
    if literal == ".":
        raise LexError("Malformed number '.': no digits", pos)
    return Token(TokenType.NUMBER, float(literal), pos)


def tokenize(source: str, *, policy: WarningPolicy | None = None) -> list[Token]:
    """Expand macros in *source*, then lex the result."""
    return lex(expand(source, policy=policy))


class Lexer:
    """Cursor over a token list with one token of lookahead.

    Past the end, ``peek`` and ``next`` keep returning an EOF token.
    """

    def __init__(self, tokens: list[Token], end: int | None = None) -> None:
        self._tokens = tokens
        self._index = 0
        if end is None:
            end = tokens[-1].pos + 1 if tokens else 0
        self._eof = Token(TokenType.EOF, None, end)

    def peek(self) -> Token:
        if self._index < len(self._tokens):
            return self._tokens[self._index]
        return self._eof

    def next(self) -> Token:
        token = self.peek()
        if self._index < len(self._tokens):
            self._index += 1
        return token
