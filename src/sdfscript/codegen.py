"""Precedence-aware source generation from the AST.

Two targets share one walker:

- ``python``: a function ``(x, y, z) -> distance`` that calls into
  ``sdfscript.runtime``, with ``a0``/``a1`` baked in as constants.
- ``dsl``: canonical sdfscript source, used by ``fmt``. Reparsing the
  output gives back an equal AST.

A sub-expression is parenthesized only when its precedence is lower than
what its position requires.
"""

from __future__ import annotations

import keyword
import math
from collections.abc import Callable
from typing import Literal

import numpy as np

from sdfscript import layout
from sdfscript.errors import CodegenError, TypeMismatchError, UnboundVariableError
from sdfscript.layout import Doc, concat, group, hardline, intersperse, line, nest, text
from sdfscript.lexer import CANONICAL_MNEMONICS
from sdfscript.nodes import (
    Assign,
    AssignExpr,
    AssignFromArray,
    AssignToArray,
    BinaryOp,
    BinOp,
    Empty,
    Expr,
    Function,
    FunctionName,
    IncDec,
    Negate,
    Number,
    PREFIX_BINDING_POWER,
    RIGHT_ASSOCIATIVE,
    Return,
    Sequence,
    Statement,
    TernaryOp,
    Variable,
    VARIADIC_FUNCTIONS,
    precedence,
)
from sdfscript.runtime import HOST_NAMES, namespace

Target = Literal["python", "dsl"]
TARGETS: tuple[str, ...] = ("python", "dsl")
DEFAULT_FUNCTION_NAME = "signed_distance_function"
READ_ONLY_NAMES = frozenset({"a0", "a1"})

_INDENT = 4
_ATOM = 100


def generate(
    statement: Statement,
    width: int = 100,
    *,
    a0: float = 0.0,
    a1: float = 0.0,
    target: Target = "python",
    function_name: str = DEFAULT_FUNCTION_NAME,
    standalone: bool = False,
) -> str:
    """Emit *statement* as source text for *target*.

    With ``standalone=True`` the Python output starts with the runtime
    import, so it can be saved and imported as a module.

    Raises:
        CodegenError: On an unknown target, an invalid function name, or a
            program that cannot be expressed in the target.
    """
    if target == "dsl":
        return unparse(statement, width)
    if target != "python":
        raise CodegenError(f"Unknown target {target!r} (known: {', '.join(TARGETS)})")
    doc = _PythonEmitter(function_name, a0, a1).function(statement)
    source = layout.render(doc, width) + "\n"
    if standalone:
        source = "from sdfscript.runtime import *  # noqa: F403\n\n\n" + source
    return source


def unparse(statement: Statement, width: int = 100) -> str:
    """Emit canonical DSL source for *statement*."""
    return layout.render(_DslEmitter().program(statement), width)


def compile_function(
    statement: Statement,
    a0: float = 0.0,
    a1: float = 0.0,
    *,
    function_name: str = DEFAULT_FUNCTION_NAME,
) -> Callable[[float, float, float], float]:
    """Generate Python for *statement*, compile it, and return it as a callable."""
    source = generate(statement, a0=a0, a1=a1, function_name=function_name)
    scope = namespace()
    scope["__builtins__"] = {}
    try:
        exec(compile(source, f"<sdfscript:{function_name}>", "exec"), scope)
    except SyntaxError as e:
        raise CodegenError(f"Generated code does not compile: {e}") from e
    fn = scope[function_name]

    def sdf(x: float, y: float, z: float) -> float:
        try:
            with np.errstate(all="ignore"):
                result = fn(np.float64(x), np.float64(y), np.float64(z))
        except NameError as e:
            raise UnboundVariableError(f"Generated code read an unbound variable: {e}") from e
        if isinstance(result, tuple):
            raise TypeMismatchError(f"Program result must be a scalar, got a {len(result)}-vector")
        return float(result)

    sdf.__name__ = function_name
    sdf.source = source
    return sdf


# ---------------------------------------------------------------------------
# Shared walker
# ---------------------------------------------------------------------------


class _Emitter:
    """Expression walker; targets override the spelling hooks."""

    ternary_rank = 1

    def expr(self, e: Expr, min_prec: int = 0) -> Doc:
        doc, prec = self._expr(e)
        if prec < min_prec:
            return concat("(", doc, ")")
        return doc

    def _expr(self, e: Expr) -> tuple[Doc, int]:
        if isinstance(e, Number):
            return self.number(e.value)
        if isinstance(e, Variable):
            return text(self.variable(e.name)), _ATOM
        if isinstance(e, Negate):
            return self.negate(e)
        if isinstance(e, BinaryOp):
            return self.binary(e)
        if isinstance(e, TernaryOp):
            return self.ternary(e)
        if isinstance(e, Function):
            return self.call(e)
        if isinstance(e, AssignExpr):
            return self.postfix(e)
        raise TypeError(f"Not an expression: {e!r}")

    def call_args(self, e: Function) -> list[Doc]:
        args = [self.expr(a) for a in e.args]
        if e.name in VARIADIC_FUNCTIONS:
            return [layout.bracketed("[", args, "]", _INDENT)]
        return args

    def number(self, value: float) -> tuple[Doc, int]:
        raise NotImplementedError

    def variable(self, name: str) -> str:
        return name

    def negate(self, e: Negate) -> tuple[Doc, int]:
        raise NotImplementedError

    def binary(self, e: BinaryOp) -> tuple[Doc, int]:
        raise NotImplementedError

    def ternary(self, e: TernaryOp) -> tuple[Doc, int]:
        raise NotImplementedError

    def call(self, e: Function) -> tuple[Doc, int]:
        raise NotImplementedError

    def postfix(self, e: AssignExpr) -> tuple[Doc, int]:
        raise NotImplementedError


def _flatten(statement: Statement) -> list[Statement]:
    if isinstance(statement, Sequence):
        out: list[Statement] = []
        for child in statement.statements:
            out.extend(_flatten(child))
        return out
    return [statement]


def _format_decimal(value: float) -> str:
    """Shortest positional spelling of a finite, non-negative float."""
    if value.is_integer() and value < 1e16:
        return str(int(value))
    return np.format_float_positional(value, trim="-")


# ---------------------------------------------------------------------------
# DSL target
# ---------------------------------------------------------------------------


class _DslEmitter(_Emitter):
    def program(self, statement: Statement) -> Doc:
        statements = _flatten(statement)
        docs = [self.statement(s) for s in statements]
        if statements and isinstance(statements[-1], Empty):
            # A trailing separator is dropped on parse; an extra one keeps the Empty.
            docs.append(text(""))
        return group(intersperse(concat(",", line()), docs))

    def statement(self, s: Statement) -> Doc:
        if isinstance(s, Empty):
            return text("")
        if isinstance(s, Return):
            if isinstance(s.expr, AssignExpr):
                # A bare `n++` statement parses as an assignment.
                return concat("(", self.expr(s.expr), ")")
            return self.expr(s.expr)
        if isinstance(s, Assign):
            return concat(s.name, " = ", self.expr(s.expr))
        if isinstance(s, AssignToArray):
            return concat(_name_list(s.names), " = ", self.expr(s.expr))
        if isinstance(s, AssignFromArray):
            values = layout.bracketed("[", [self.expr(e) for e in s.exprs], "]", _INDENT)
            return concat(_name_list(s.names), " = ", values)
        raise TypeError(f"Not a statement: {s!r}")

    def number(self, value: float) -> tuple[Doc, int]:
        if not math.isfinite(value):
            raise CodegenError(f"Number {value} has no sdfscript spelling")
        if value < 0 or (value == 0 and math.copysign(1.0, value) < 0):
            return text("-" + _format_decimal(-value)), PREFIX_BINDING_POWER
        return text(_format_decimal(value)), _ATOM

    def negate(self, e: Negate) -> tuple[Doc, int]:
        operand = self.expr(e.operand, PREFIX_BINDING_POWER)
        if _starts_with_minus(e.operand):
            operand = concat("(", operand, ")")
        return concat("-", operand), PREFIX_BINDING_POWER

    def binary(self, e: BinaryOp) -> tuple[Doc, int]:
        prec = precedence(e.op)
        right_assoc = e.op in RIGHT_ASSOCIATIVE
        lhs = self.expr(e.lhs, prec + 1 if right_assoc else prec)
        rhs = self.expr(e.rhs, prec if right_assoc else prec + 1)
        return concat(lhs, f" {e.op.value} ", rhs), prec

    def ternary(self, e: TernaryOp) -> tuple[Doc, int]:
        rank = self.ternary_rank
        cond = self.expr(e.condition, rank + 1)
        if_true = self.expr(e.if_true, 0)
        if_false = self.expr(e.if_false, rank)
        return concat(cond, " ? ", if_true, " : ", if_false), rank

    def call(self, e: Function) -> tuple[Doc, int]:
        mnemonic = CANONICAL_MNEMONICS[e.name]
        return layout.bracketed(mnemonic + "(", self.call_args(e), ")", _INDENT), _ATOM

    def postfix(self, e: AssignExpr) -> tuple[Doc, int]:
        return text(e.name + e.op.value), _ATOM


def _name_list(names: tuple[str, ...]) -> Doc:
    return text("[" + ", ".join(names) + "]")


def _starts_with_minus(e: Expr) -> bool:
    """Whether the DSL spelling of *e* begins with '-' (``--`` would lex as decrement)."""
    if isinstance(e, Negate):
        return True
    if isinstance(e, Number):
        return math.copysign(1.0, e.value) < 0
    return False


# ---------------------------------------------------------------------------
# Python target
# ---------------------------------------------------------------------------

# Python's own precedence ladder, low to high.
_PY_TERNARY = 1
_PY_OR = 2
_PY_AND = 3
_PY_COMPARE = 4
_PY_ADD = 5
_PY_MUL = 6
_PY_UNARY = 7
_PY_POW = 8

_PY_BINARY: dict[BinOp, tuple[str, int]] = {
    BinOp.OR: ("or", _PY_OR),
    BinOp.AND: ("and", _PY_AND),
    BinOp.EQ: ("==", _PY_COMPARE),
    BinOp.NOT_EQ: ("!=", _PY_COMPARE),
    BinOp.GREATER: (">", _PY_COMPARE),
    BinOp.GREATER_EQ: (">=", _PY_COMPARE),
    BinOp.LESS: ("<", _PY_COMPARE),
    BinOp.LESS_EQ: ("<=", _PY_COMPARE),
    BinOp.ADD: ("+", _PY_ADD),
    BinOp.SUB: ("-", _PY_ADD),
    BinOp.MUL: ("*", _PY_MUL),
    BinOp.DIV: ("/", _PY_MUL),
    BinOp.POW: ("**", _PY_POW),
}

_PY_RESERVED = frozenset(keyword.kwlist) | frozenset(keyword.softkwlist) | HOST_NAMES


class _PythonEmitter(_Emitter):
    ternary_rank = _PY_TERNARY

    def __init__(self, function_name: str, a0: float, a1: float) -> None:
        if not function_name.isidentifier() or keyword.iskeyword(function_name):
            raise CodegenError(f"Function name {function_name!r} is not a Python identifier")
        if function_name in HOST_NAMES:
            raise CodegenError(f"Function name {function_name!r} shadows a runtime function")
        self.function_name = function_name
        self.a0 = float(a0)
        self.a1 = float(a1)

    def function(self, statement: Statement) -> Doc:
        statements = [s for s in _flatten(statement) if not isinstance(s, Empty)]
        if not statements:
            raise CodegenError("Program has no statements to generate")

        body: list[Doc] = [
            concat("a0 = ", self.number(self.a0)[0]),
            concat("a1 = ", self.number(self.a1)[0]),
        ]
        for s in statements[:-1]:
            body.append(self.statement(s))
        body.extend(self.final_statement(statements[-1]))

        header = text(f"def {self.function_name}(x, y, z):")
        return concat(header, nest(_INDENT, concat(hardline(), intersperse(hardline(), body))))

    def statement(self, s: Statement) -> Doc:
        if isinstance(s, Return):
            if isinstance(s.expr, AssignExpr):
                return self._increment(s.expr)
            return self.expr(s.expr)
        if isinstance(s, Assign):
            return concat(self._target(s.name), " = ", self.expr(s.expr))
        if isinstance(s, AssignToArray):
            return concat(self._targets(s.names), " = ", self.expr(s.expr))
        if isinstance(s, AssignFromArray):
            if len(s.names) == 1:
                return concat(self._target(s.names[0]), " = ", self.expr(s.exprs[0]))
            values = intersperse(", ", [self.expr(e) for e in s.exprs])
            return concat(self._targets(s.names), " = ", values)
        raise TypeError(f"Not a statement: {s!r}")

    def final_statement(self, s: Statement) -> list[Doc]:
        """The last statement, followed by a return of its value."""
        if isinstance(s, Return):
            return [concat("return ", self.expr(s.expr))]
        if isinstance(s, Assign):
            return [self.statement(s), text("return " + self.variable(s.name))]
        if isinstance(s, AssignToArray):
            return [self.statement(s), concat("return ", self._targets(s.names))]
        if isinstance(s, AssignFromArray):
            return [self.statement(s), text("return " + self.variable(s.names[-1]))]
        raise TypeError(f"Not a statement: {s!r}")

    def variable(self, name: str) -> str:
        if name in _PY_RESERVED or name == self.function_name:
            return name + "_"
        return name

    def _target(self, name: str) -> str:
        if name in READ_ONLY_NAMES:
            raise CodegenError(f"Cannot assign to read-only parameter {name!r}")
        return self.variable(name)

    def _targets(self, names: tuple[str, ...]) -> Doc:
        spelled = [self._target(n) for n in names]
        if len(spelled) == 1:
            return text(spelled[0] + ",")
        return text(", ".join(spelled))

    def _increment(self, e: AssignExpr) -> Doc:
        name = self._target(e.name)
        step = "+" if e.op == IncDec.INCREMENT else "-"
        return text(f"{name} = {name} {step} 1")

    def number(self, value: float) -> tuple[Doc, int]:
        if math.isnan(value):
            return text("nan"), _ATOM
        if math.isinf(value):
            return (text("inf"), _ATOM) if value > 0 else (text("-inf"), _PY_UNARY)
        if value < 0 or (value == 0 and math.copysign(1.0, value) < 0):
            return text("-" + _python_float(-value)), _PY_UNARY
        return text(_python_float(value)), _ATOM

    def negate(self, e: Negate) -> tuple[Doc, int]:
        return concat("-", self.expr(e.operand, _PY_UNARY)), _PY_UNARY

    def binary(self, e: BinaryOp) -> tuple[Doc, int]:
        spelling, prec = _PY_BINARY[e.op]
        if prec == _PY_COMPARE:
            # Python chains comparisons; never let one nest bare inside another.
            lhs = self.expr(e.lhs, prec + 1)
            rhs = self.expr(e.rhs, prec + 1)
        elif e.op == BinOp.POW:
            lhs = self.expr(e.lhs, prec + 1)
            rhs = self.expr(e.rhs, _PY_UNARY)
        else:
            lhs = self.expr(e.lhs, prec)
            rhs = self.expr(e.rhs, prec + 1)
        return concat(lhs, f" {spelling} ", rhs), prec

    def ternary(self, e: TernaryOp) -> tuple[Doc, int]:
        rank = self.ternary_rank
        cond = self.expr(e.condition, rank + 1)
        if_true = self.expr(e.if_true, rank + 1)
        if_false = self.expr(e.if_false, rank)
        return concat(if_true, " if ", cond, " else ", if_false), rank

    def call(self, e: Function) -> tuple[Doc, int]:
        args = self.call_args(e)
        if e.name == FunctionName.ROT0:
            args.append(text("a0"))
        elif e.name == FunctionName.ROT1:
            args.append(text("a1"))
        return layout.bracketed(e.name.host_name + "(", args, ")", _INDENT), _ATOM

    def postfix(self, e: AssignExpr) -> tuple[Doc, int]:
        name = self._target(e.name)
        step = "+" if e.op == IncDec.INCREMENT else "-"
        return text(f"({name} := {name} {step} 1)"), _ATOM


def _python_float(value: float) -> str:
    if value.is_integer() and value < 1e16:
        return str(int(value))
    return repr(value)
