"""Pratt parser: tokens to a statement AST."""

from __future__ import annotations

from functools import lru_cache

from sdfscript.errors import ParseError
from sdfscript.lexer import Lexer, Token, TokenType, lex
from sdfscript.nodes import (
    BINARY_BINDING_POWER,
    PREFIX_BINDING_POWER,
    TERNARY_BINDING_POWER,
    Assign,
    AssignExpr,
    AssignFromArray,
    AssignToArray,
    BinaryOp,
    BinOp,
    Empty,
    Expr,
    Function,
    IncDec,
    Negate,
    Number,
    Return,
    Sequence,
    Statement,
    TernaryOp,
    Variable,
)
from sdfscript.preprocessing import expand
from sdfscript.warning_policy import WarningPolicy, emit_warning

_BINARY_OPS: dict[str, BinOp] = {op.value: op for op in BinOp}
_POSTFIX_OPS: dict[str, IncDec] = {op.value: op for op in IncDec}
_COMPOUND_ASSIGN: dict[str, BinOp] = {
    "+=": BinOp.ADD,
    "-=": BinOp.SUB,
    "*=": BinOp.MUL,
    "/=": BinOp.DIV,
}
_SEPARATORS = (TokenType.COMMA, TokenType.SEMICOLON)


def parse(tokens: list[Token] | Lexer, *, policy: WarningPolicy | None = None) -> Sequence:
    """Parse a token list (or a ``Lexer`` over one) into a program.

    The program is always a ``Sequence``, even for a single statement.

    Raises:
        ParseError: On an unexpected token or an unmatched delimiter.
    """
    lexer = tokens if isinstance(tokens, Lexer) else Lexer(tokens)
    return Parser(lexer, policy=policy).parse_program()


@lru_cache(maxsize=256)
def parse_source(source: str, *, policy: WarningPolicy | None = None) -> Sequence:
    """Expand, lex and parse *source*.

    Results are memoized per (source, policy); diagnostics for a given
    source are emitted on its first parse only.
    """
    expanded = expand(source, policy=policy)
    return parse(Lexer(lex(expanded), end=len(expanded)), policy=policy)


class Parser:
    """Recursive-descent statement parser with a Pratt expression core."""

    def __init__(self, lexer: Lexer, *, policy: WarningPolicy | None = None) -> None:
        self._lexer = lexer
        self._policy = policy

    # -----------------------------------------------------------------------
    # Program and statements
    # -----------------------------------------------------------------------

    def parse_program(self) -> Sequence:
        statements: list[Statement] = []
        while True:
            tok = self._lexer.peek()
            if tok.type == TokenType.EOF:
                break
            if tok.type in _SEPARATORS:
                self._lexer.next()
                statements.append(Empty())
                continue

            statements.append(self._statement())

            tok = self._lexer.peek()
            if tok.type == TokenType.EOF:
                break
            if tok.type not in _SEPARATORS:
                raise ParseError(f"Expected ',' or ';' between statements, found {_describe(tok)}", tok.pos)
            self._lexer.next()

        self._check_final_statement(statements)
        return Sequence(tuple(statements))

    def _check_final_statement(self, statements: list[Statement]) -> None:
        for stmt in reversed(statements):
            if isinstance(stmt, Empty):
                continue
            if not isinstance(stmt, Return):
                emit_warning(
                    "W03",
                    "Program does not end with an expression; "
                    "its result is the last assigned value",
                    policy=self._policy,
                )
            return

    def _statement(self) -> Statement:
        tok = self._lexer.peek()

        if tok.type == TokenType.LBRACKET:
            return self._array_assignment()

        if tok.type != TokenType.VARIABLE:
            return Return(self._expr(0))

        self._lexer.next()
        name = tok.value
        follow = self._lexer.peek()

        if follow.type == TokenType.ASSIGN:
            self._lexer.next()
            value = self._expr(0)
            if follow.value == "=":
                return Assign(name, value)
            return Assign(name, BinaryOp(_COMPOUND_ASSIGN[follow.value], Variable(name), value))

        if follow.type == TokenType.OPERATOR and follow.value in _POSTFIX_OPS:
            self._lexer.next()
            op = _POSTFIX_OPS[follow.value]
            after = self._lexer.peek()
            if after.type in _SEPARATORS or after.type == TokenType.EOF:
                step = BinOp.ADD if op == IncDec.INCREMENT else BinOp.SUB
                return Assign(name, BinaryOp(step, Variable(name), Number(1.0)))
            return Return(self._infix(AssignExpr(name, op), 0))

        return Return(self._infix(Variable(name), 0))

    def _array_assignment(self) -> Statement:
        open_tok = self._lexer.next()
        names: list[str] = []
        while self._lexer.peek().type != TokenType.RBRACKET:
            tok = self._lexer.next()
            if tok.type != TokenType.VARIABLE:
                raise ParseError(f"Expected a variable name in array assignment, found {_describe(tok)}", tok.pos)
            names.append(tok.value)
            if self._lexer.peek().type == TokenType.COMMA:
                self._lexer.next()
                continue
            break
        self._expect(TokenType.RBRACKET, "']'", opened_at=open_tok)
        if not names:
            raise ParseError("Array assignment needs at least one name", open_tok.pos)

        eq = self._lexer.next()
        if eq.type != TokenType.ASSIGN or eq.value != "=":
            raise ParseError(f"Expected '=' after array target, found {_describe(eq)}", eq.pos)

        if self._lexer.peek().type == TokenType.LBRACKET:
            rhs_tok = self._lexer.peek()
            exprs = self._bracket_list()
            if len(exprs) != len(names):
                raise ParseError(
                    f"Array assignment binds {len(names)} names from {len(exprs)} expressions",
                    rhs_tok.pos,
                )
            return AssignFromArray(tuple(names), tuple(exprs))
        return AssignToArray(tuple(names), self._expr(0))

    # -----------------------------------------------------------------------
    # Expressions
    # -----------------------------------------------------------------------

    def _expr(self, min_bp: int) -> Expr:
        return self._infix(self._prefix(), min_bp)

    def _prefix(self) -> Expr:
        tok = self._lexer.next()

        if tok.type == TokenType.NUMBER:
            return Number(tok.value)

        if tok.type == TokenType.VARIABLE:
            follow = self._lexer.peek()
            if follow.type == TokenType.OPERATOR and follow.value in _POSTFIX_OPS:
                self._lexer.next()
                return AssignExpr(tok.value, _POSTFIX_OPS[follow.value])
            return Variable(tok.value)

        if tok.type == TokenType.FUNCTION:
            self._expect(TokenType.LPAREN, f"'(' after {tok.value.value}")
            return Function(tok.value, tuple(self._call_args(tok)))

        if tok.type == TokenType.LPAREN:
            inner = self._expr(0)
            self._expect(TokenType.RPAREN, "')'", opened_at=tok)
            return inner

        if tok.type == TokenType.OPERATOR and tok.value == "-":
            return Negate(self._expr(PREFIX_BINDING_POWER))
        if tok.type == TokenType.OPERATOR and tok.value == "+":
            return self._expr(PREFIX_BINDING_POWER)

        raise ParseError(f"Unexpected {_describe(tok)}", tok.pos)

    def _infix(self, lhs: Expr, min_bp: int) -> Expr:
        while True:
            tok = self._lexer.peek()

            if tok.type == TokenType.QUESTION:
                l_bp, r_bp = TERNARY_BINDING_POWER
                if l_bp < min_bp:
                    break
                self._lexer.next()
                if_true = self._expr(0)
                self._expect(TokenType.COLON, "':' in conditional expression", opened_at=tok)
                if_false = self._expr(r_bp)
                lhs = TernaryOp(lhs, if_true, if_false)
                continue

            if tok.type == TokenType.OPERATOR and tok.value in _BINARY_OPS:
                op = _BINARY_OPS[tok.value]
                l_bp, r_bp = BINARY_BINDING_POWER[op]
                if l_bp < min_bp:
                    break
                self._lexer.next()
                lhs = BinaryOp(op, lhs, self._expr(r_bp))
                continue

            break
        return lhs

    def _call_args(self, func_tok: Token) -> list[Expr]:
        args: list[Expr] = []
        while self._lexer.peek().type != TokenType.RPAREN:
            if self._lexer.peek().type == TokenType.LBRACKET:
                args.extend(self._bracket_list())
            else:
                args.append(self._expr(0))
            if self._lexer.peek().type == TokenType.COMMA:
                self._lexer.next()
                continue
            break
        self._expect(TokenType.RPAREN, "')' closing the argument list", opened_at=func_tok)
        return args

    def _bracket_list(self) -> list[Expr]:
        """Parse ``[e1, e2, ...]`` (trailing comma allowed)."""
        open_tok = self._lexer.next()
        exprs: list[Expr] = []
        while self._lexer.peek().type != TokenType.RBRACKET:
            exprs.append(self._expr(0))
            if self._lexer.peek().type == TokenType.COMMA:
                self._lexer.next()
                continue
            break
        self._expect(TokenType.RBRACKET, "']'", opened_at=open_tok)
        return exprs

    def _expect(self, token_type: TokenType, what: str, opened_at: Token | None = None) -> Token:
        tok = self._lexer.next()
        if tok.type != token_type:
            message = f"Expected {what}, found {_describe(tok)}"
            if opened_at is not None:
                message += f" (opened at offset {opened_at.pos})"
            raise ParseError(message, tok.pos)
        return tok


def _describe(tok: Token) -> str:
    if tok.type == TokenType.EOF:
        return "end of input"
    if tok.type == TokenType.NUMBER:
        return f"number {tok.value:g}"
    if tok.type == TokenType.FUNCTION:
        return f"function {tok.value.value!r}"
    if tok.type == TokenType.VARIABLE:
        return f"variable {tok.value!r}"
    return f"{tok.value!r}"
