"""Tests for the Pratt parser."""

from __future__ import annotations

import warnings

import pytest

from sdfscript.errors import ParseError
from sdfscript.lexer import lex
from sdfscript.nodes import (
    Assign,
    AssignExpr,
    AssignFromArray,
    AssignToArray,
    BinaryOp,
    BinOp,
    Empty,
    Function,
    FunctionName,
    IncDec,
    Negate,
    Number,
    Return,
    Sequence,
    TernaryOp,
    Variable,
)
from sdfscript.parser import parse, parse_source
from sdfscript.warning_policy import SdfScriptWarning, WarningPolicy

a, b, c, d = (Variable(n) for n in "abcd")
x, y, z = (Variable(n) for n in "xyz")


def _expr(source: str):
    """Parse a single-expression program and return its expression."""
    program = parse_source(source)
    assert len(program.statements) == 1
    (statement,) = program.statements
    assert isinstance(statement, Return)
    return statement.expr


def _bin(op: BinOp, lhs, rhs) -> BinaryOp:
    return BinaryOp(op, lhs, rhs)


class TestPrecedence:
    def test_mul_binds_tighter_than_add(self):
        assert parse_source("1 + 2 * 3") == parse_source("1 + (2 * 3)")
        assert parse_source("1 + 2 * 3") != parse_source("(1 + 2) * 3")

    def test_left_associative(self):
        assert _expr("a - b - c") == _bin(BinOp.SUB, _bin(BinOp.SUB, a, b), c)
        assert _expr("a / b / c") == _bin(BinOp.DIV, _bin(BinOp.DIV, a, b), c)

    def test_power_right_associative(self):
        assert _expr("a ** b ** c") == _bin(BinOp.POW, a, _bin(BinOp.POW, b, c))

    def test_power_tighter_than_mul(self):
        assert _expr("a * b ** c") == _bin(BinOp.MUL, a, _bin(BinOp.POW, b, c))

    def test_prefix_minus_binds_tightest(self):
        assert _expr("-a ** 2") == _bin(BinOp.POW, Negate(a), Number(2.0))
        assert _expr("-a * b") == _bin(BinOp.MUL, Negate(a), b)

    def test_power_with_negative_exponent(self):
        assert _expr("a ** -b") == _bin(BinOp.POW, a, Negate(b))

    def test_unary_plus_dropped(self):
        assert _expr("+a") == a

    def test_logical_ladder(self):
        expected = _bin(BinOp.OR, a, _bin(BinOp.AND, b, c))
        assert _expr("a || b && c") == expected

    def test_comparison_below_arithmetic(self):
        expected = _bin(BinOp.LESS, _bin(BinOp.ADD, a, b), _bin(BinOp.MUL, c, d))
        assert _expr("a + b < c * d") == expected

    def test_equality_below_relational(self):
        expected = _bin(BinOp.EQ, _bin(BinOp.LESS, a, b), _bin(BinOp.GREATER, c, d))
        assert _expr("a < b == c > d") == expected


class TestTernary:
    def test_simple(self):
        cond = _bin(BinOp.GREATER, x, Number(0.0))
        assert _expr("x > 0 ? x : -x") == TernaryOp(cond, x, Negate(x))

    def test_right_nested(self):
        assert _expr("a ? b : c ? d : x") == TernaryOp(a, b, TernaryOp(c, d, x))

    def test_nested_in_true_branch(self):
        assert _expr("a ? b ? c : d : x") == TernaryOp(a, TernaryOp(b, c, d), x)

    def test_lowest_precedence(self):
        expected = TernaryOp(a, _bin(BinOp.ADD, b, c), _bin(BinOp.MUL, d, x))
        assert _expr("a ? b + c : d * x") == expected

    def test_missing_colon(self):
        with pytest.raises(ParseError, match="Expected ':' in conditional expression"):
            parse_source("a ? b")


class TestCalls:
    def test_mnemonic_call(self):
        assert _expr("L(x, y, z)") == Function(FunctionName.LENGTH, (x, y, z))

    def test_no_arguments(self):
        assert _expr("sin()") == Function(FunctionName.SIN, ())

    def test_bracket_arguments_flattened(self):
        assert _expr("U([a, b], c)") == Function(FunctionName.UNION, (a, b, c))

    def test_bracket_trailing_comma(self):
        assert _expr("U([a, b,])") == Function(FunctionName.UNION, (a, b))

    def test_nested_calls(self):
        inner = Function(FunctionName.ABS, (x,))
        assert _expr("sin(B(x))") == Function(FunctionName.SIN, (inner,))

    def test_missing_open_paren(self):
        with pytest.raises(ParseError, match="Expected '\\(' after sin, found variable 'x'"):
            parse_source("sin x")

    def test_unclosed_call(self):
        with pytest.raises(
            ParseError,
            match=r"Expected '\)' closing the argument list, found end of input \(opened at offset 0\)",
        ):
            parse_source("sin(x")


class TestStatements:
    def test_program_is_always_a_sequence(self):
        assert parse_source("x") == Sequence((Return(x),))

    def test_assignment(self):
        program = parse_source("s = 10, s")
        assert program.statements == (Assign("s", Number(10.0)), Return(Variable("s")))

    @pytest.mark.parametrize(
        "op, binop",
        [("+=", BinOp.ADD), ("-=", BinOp.SUB), ("*=", BinOp.MUL), ("/=", BinOp.DIV)],
    )
    def test_compound_assignment(self, op, binop):
        program = parse_source(f"s {op} .5, s")
        s = Variable("s")
        assert program.statements[0] == Assign("s", BinaryOp(binop, s, Number(0.5)))

    def test_standalone_increment_is_assignment(self):
        program = parse_source("n = 0, n++, n--; n")
        n = Variable("n")
        assert program.statements[1] == Assign("n", _bin(BinOp.ADD, n, Number(1.0)))
        assert program.statements[2] == Assign("n", _bin(BinOp.SUB, n, Number(1.0)))

    def test_increment_inside_expression(self):
        program = parse_source("n = 0, n++ * 2")
        expected = _bin(BinOp.MUL, AssignExpr("n", IncDec.INCREMENT), Number(2.0))
        assert program.statements[1] == Return(expected)

    def test_parenthesized_increment(self):
        program = parse_source("n = 0, (n--), n")
        assert program.statements[1] == Return(AssignExpr("n", IncDec.DECREMENT))

    def test_statement_starting_with_variable_continues_as_expression(self):
        assert _expr("x * 2 + y") == _bin(BinOp.ADD, _bin(BinOp.MUL, x, Number(2.0)), y)

    def test_empty_statements_kept(self):
        program = parse_source("a, , b")
        assert program.statements == (Return(a), Empty(), Return(b))

    def test_trailing_separator_dropped(self):
        assert parse_source("a,") == Sequence((Return(a),))
        assert parse_source("a;") == Sequence((Return(a),))

    def test_semicolons_and_commas_mix(self):
        assert parse_source("a; b, c") == Sequence((Return(a), Return(b), Return(c)))

    def test_empty_program(self):
        assert parse_source("") == Sequence(())

    def test_missing_separator(self):
        with pytest.raises(ParseError, match="Expected ',' or ';' between statements") as exc:
            parse_source("x y")
        assert exc.value.position == 2


class TestArrayAssignment:
    def test_to_array(self):
        program = parse_source("[p, q] = r0(x, y), p")
        rotated = Function(FunctionName.ROT0, (x, y))
        assert program.statements[0] == AssignToArray(("p", "q"), rotated)

    def test_from_array(self):
        program = parse_source("[p, q] = [1, x], p")
        assert program.statements[0] == AssignFromArray(("p", "q"), (Number(1.0), x))

    def test_from_array_trailing_comma(self):
        program = parse_source("[p, q,] = [1, 2,], p")
        assert program.statements[0] == AssignFromArray(("p", "q"), (Number(1.0), Number(2.0)))

    def test_count_mismatch(self):
        with pytest.raises(ParseError, match="binds 2 names from 1 expressions"):
            parse_source("[p, q] = [1], p")

    def test_non_variable_target(self):
        with pytest.raises(ParseError, match="Expected a variable name in array assignment"):
            parse_source("[1] = x, x")

    def test_empty_target(self):
        with pytest.raises(ParseError, match="at least one name"):
            parse_source("[] = x, x")

    def test_compound_assignment_rejected(self):
        with pytest.raises(ParseError, match="Expected '=' after array target"):
            parse_source("[p] += x, p")


class TestErrors:
    def test_unexpected_token(self):
        with pytest.raises(ParseError, match=r"Unexpected '\)'"):
            parse_source(")")

    def test_unclosed_paren(self):
        with pytest.raises(ParseError, match=r"Expected '\)'.*opened at offset 0"):
            parse_source("(x + 1")

    def test_dangling_operator(self):
        with pytest.raises(ParseError, match="Unexpected end of input"):
            parse_source("x +")

    def test_error_offset_in_expanded_text(self):
        # "@2{x,}+" expands to "x,x,+"; the error is at end of the expanded text.
        with pytest.raises(ParseError, match="at offset 5"):
            parse_source("@2{x,}+")


class TestFinalStatementWarning:
    def test_assignment_last_warns(self):
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always")
            parse_source("s = 1")
        assert len(w) == 1
        assert issubclass(w[0].category, SdfScriptWarning)
        assert w[0].message.code == "W03"

    def test_trailing_empty_ignored(self):
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always")
            parse_source("s = 1, s, ,")
        assert len(w) == 0

    def test_expression_last_is_quiet(self):
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always")
            parse_source("s = 1, s")
        assert len(w) == 0

    def test_warn_as_error(self):
        policy = WarningPolicy(warn_as_error=frozenset({"W03"}))
        with pytest.raises(ParseError, match=r"\[W03\]"):
            parse_source("s = 1", policy=policy)


class TestEntryPoints:
    def test_parse_token_list(self):
        assert parse(lex("x + 1")) == parse_source("x + 1")

    def test_parse_source_memoized(self):
        assert parse_source("x + 1") is parse_source("x + 1")

    def test_ast_is_hashable(self):
        assert hash(parse_source("U(x, y)")) == hash(parse_source("U(x, y)"))
