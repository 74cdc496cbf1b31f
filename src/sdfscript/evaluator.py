"""Tree-walking evaluator: (AST, point, a0, a1) -> distance.

The result of a program is the value of the last expression evaluated
anywhere in the run. Each statement executor receives the previous last
value and returns the new one, so no hidden register lives in the
environment.
"""

from __future__ import annotations

from collections.abc import Callable

import numpy as np
from numpy.typing import ArrayLike

from sdfscript.errors import (
    ArityError,
    EvaluationError,
    ReadOnlyVariableError,
    TypeMismatchError,
    UnboundVariableError,
)
from sdfscript.functions import BUILTINS
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
    IncDec,
    Negate,
    Number,
    Return,
    Sequence,
    Statement,
    TernaryOp,
    Variable,
)
from sdfscript.parser import parse_source
from sdfscript.values import Value, ValueKind
from sdfscript.warning_policy import WarningPolicy

READ_ONLY_NAMES = frozenset({"a0", "a1"})

_ARITHMETIC: dict[BinOp, Callable[[np.ndarray, np.ndarray], np.ndarray]] = {
    BinOp.ADD: np.add,
    BinOp.SUB: np.subtract,
    BinOp.MUL: np.multiply,
    BinOp.DIV: np.divide,
    BinOp.POW: np.power,
}
_RELATIONAL: dict[BinOp, Callable[[np.ndarray, np.ndarray], np.ndarray]] = {
    BinOp.GREATER: np.greater,
    BinOp.GREATER_EQ: np.greater_equal,
    BinOp.LESS: np.less,
    BinOp.LESS_EQ: np.less_equal,
}
_EQUALITY: dict[BinOp, Callable[[np.ndarray, np.ndarray], np.ndarray]] = {
    BinOp.EQ: np.equal,
    BinOp.NOT_EQ: np.not_equal,
}


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def evaluate(statement: Statement, point: ArrayLike, a0: float = 0.0, a1: float = 0.0) -> float:
    """Evaluate *statement* at one 3D point.

    Raises:
        EvaluationError: Or a subclass, on any runtime failure.
    """
    x, y, z = (float(c) for c in np.asarray(point, dtype=np.float64).reshape(3))
    evaluator = Evaluator(a0, a1, batch=False)
    with np.errstate(all="ignore"):
        result = evaluator.run(statement, x, y, z)
    return float(result)


def evaluate_many(
    statement: Statement, points: ArrayLike, a0: float = 0.0, a1: float = 0.0
) -> np.ndarray:
    """Evaluate *statement* at every row of an ``(N, 3)`` array.

    Returns an array of shape ``(N,)``. Where a ternary condition differs
    across points both branches run, each in its own copy of the
    environment, and the resulting bindings are merged point by point. The
    right operand of ``&&``/``||`` is handled the same way, so increments only
    take effect at the points that would have run them.
    """
    pts = np.asarray(points, dtype=np.float64)
    if pts.ndim != 2 or pts.shape[1] != 3:
        raise ValueError(f"Expected an (N, 3) array of points, got shape {pts.shape}")
    evaluator = Evaluator(a0, a1, batch=True)
    with np.errstate(all="ignore"):
        result = evaluator.run(statement, pts[:, 0], pts[:, 1], pts[:, 2])
    return np.broadcast_to(result, (pts.shape[0],)).astype(np.float64)


def make_sdf(
    source: str,
    a0: float = 0.0,
    a1: float = 0.0,
    *,
    policy: WarningPolicy | None = None,
) -> Callable[[np.ndarray], np.ndarray]:
    """Parse *source* once and return a batch distance function."""
    statement = parse_source(source, policy=policy)

    def sdf(points: np.ndarray) -> np.ndarray:
        return evaluate_many(statement, points, a0, a1)

    return sdf


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


class Evaluator:
    """Runs one program against one point (or one batch of points)."""

    def __init__(self, a0: float, a1: float, *, batch: bool) -> None:
        self.angles = (float(a0), float(a1))
        self.batch = batch
        self.env: dict[str, Value] = {}

    def run(self, statement: Statement, x: ArrayLike, y: ArrayLike, z: ArrayLike) -> np.ndarray:
        self.env = {
            "x": Value.scalar(x),
            "y": Value.scalar(y),
            "z": Value.scalar(z),
            "a0": Value.scalar(self.angles[0]),
            "a1": Value.scalar(self.angles[1]),
        }
        last = self.execute(statement, None)
        if last is None:
            raise EvaluationError("Program did not evaluate any expression")
        if last.kind != ValueKind.SCALAR:
            raise TypeMismatchError(f"Program result must be a scalar, got {last.kind.value}")
        return last.data

    # -----------------------------------------------------------------------
    # Statements
    # -----------------------------------------------------------------------

    def execute(self, statement: Statement, last: Value | None) -> Value | None:
        """Run *statement* and return the new last value."""
        if isinstance(statement, Sequence):
            for child in statement.statements:
                last = self.execute(child, last)
            return last

        if isinstance(statement, Empty):
            return last

        if isinstance(statement, Return):
            return self.eval_expr(statement.expr)

        if isinstance(statement, Assign):
            value = self.eval_expr(statement.expr)
            self._bind(statement.name, value)
            return value

        if isinstance(statement, AssignToArray):
            value = self.eval_expr(statement.expr)
            n = len(statement.names)
            if not value.is_vector or len(value.components) != n:
                raise TypeMismatchError(
                    f"Cannot unpack {value.kind.value} value into {n} names "
                    f"[{', '.join(statement.names)}]"
                )
            for name, component in zip(statement.names, value.components):
                self._bind(name, Value.scalar(component))
            return value

        if isinstance(statement, AssignFromArray):
            values = [self.eval_expr(expr) for expr in statement.exprs]
            for name, value in zip(statement.names, values):
                self._bind(name, value)
            return values[-1] if values else last

        raise TypeError(f"Not a statement: {statement!r}")

    def _bind(self, name: str, value: Value) -> None:
        if name in READ_ONLY_NAMES:
            raise ReadOnlyVariableError(f"Cannot assign to read-only parameter {name!r}")
        self.env[name] = value

    # -----------------------------------------------------------------------
    # Expressions
    # -----------------------------------------------------------------------

    def eval_expr(self, expr: Expr) -> Value:
        if isinstance(expr, Number):
            return Value.scalar(expr.value)

        if isinstance(expr, Variable):
            return self._lookup(expr.name)

        if isinstance(expr, Negate):
            operand = self.eval_expr(expr.operand)
            if operand.kind != ValueKind.SCALAR:
                raise TypeMismatchError(f"Unary '-' needs a scalar operand, got {operand.kind.value}")
            return Value.scalar(-operand.data)

        if isinstance(expr, BinaryOp):
            return self._binary(expr)

        if isinstance(expr, TernaryOp):
            return self._ternary(expr)

        if isinstance(expr, Function):
            return self._call(expr)

        if isinstance(expr, AssignExpr):
            current = self._lookup(expr.name)
            if current.kind != ValueKind.SCALAR:
                raise TypeMismatchError(
                    f"'{expr.op.value}' needs a scalar variable, {expr.name!r} is {current.kind.value}"
                )
            step = 1.0 if expr.op == IncDec.INCREMENT else -1.0
            updated = Value.scalar(current.data + step)
            self._bind(expr.name, updated)
            return updated

        raise TypeError(f"Not an expression: {expr!r}")

    def _lookup(self, name: str) -> Value:
        try:
            return self.env[name]
        except KeyError:
            raise UnboundVariableError(f"Variable {name!r} is not bound") from None

    def _binary(self, expr: BinaryOp) -> Value:
        op = expr.op
        if op in (BinOp.AND, BinOp.OR):
            return self._logical(expr)

        lhs = self.eval_expr(expr.lhs)
        rhs = self.eval_expr(expr.rhs)

        if op in _EQUALITY:
            if lhs.kind != rhs.kind or lhs.kind not in (ValueKind.SCALAR, ValueKind.BOOLEAN):
                raise _operand_error(op, lhs, rhs)
            return Value.boolean(_EQUALITY[op](lhs.data, rhs.data))

        if lhs.kind != ValueKind.SCALAR or rhs.kind != ValueKind.SCALAR:
            raise _operand_error(op, lhs, rhs)
        if op in _RELATIONAL:
            return Value.boolean(_RELATIONAL[op](lhs.data, rhs.data))
        return Value.scalar(_ARITHMETIC[op](lhs.data, rhs.data))

    def _logical(self, expr: BinaryOp) -> Value:
        is_and = expr.op == BinOp.AND
        lhs = self.eval_expr(expr.lhs)
        if lhs.kind != ValueKind.BOOLEAN:
            raise _operand_error(expr.op, lhs, None)

        if not self.batch and bool(lhs.data) != is_and:
            # false && _  /  true || _
            return lhs

        if self.batch:
            runs_rhs = lhs.data if is_and else np.logical_not(lhs.data)
            if not np.any(runs_rhs):
                return lhs
            if np.all(runs_rhs):
                rhs = self.eval_expr(expr.rhs)
            else:
                before = self.env
                self.env = dict(before)
                rhs = self.eval_expr(expr.rhs)
                self.env = _merge_env(runs_rhs, self.env, before)
        else:
            rhs = self.eval_expr(expr.rhs)
        if rhs.kind != ValueKind.BOOLEAN:
            raise _operand_error(expr.op, lhs, rhs)
        combine = np.logical_and if is_and else np.logical_or
        return Value.boolean(combine(lhs.data, rhs.data))

    def _ternary(self, expr: TernaryOp) -> Value:
        cond = self.eval_expr(expr.condition)
        if cond.kind != ValueKind.BOOLEAN:
            raise TypeMismatchError(f"Condition of '?:' must be boolean, got {cond.kind.value}")

        mask = cond.data
        if not self.batch:
            return self.eval_expr(expr.if_true if bool(mask) else expr.if_false)
        if np.all(mask):
            return self.eval_expr(expr.if_true)
        if not np.any(mask):
            return self.eval_expr(expr.if_false)

        before = self.env
        self.env = dict(before)
        if_true = self.eval_expr(expr.if_true)
        true_env = self.env
        self.env = dict(before)
        if_false = self.eval_expr(expr.if_false)
        self.env = _merge_env(mask, true_env, self.env)
        if if_true.kind != if_false.kind:
            raise TypeMismatchError(
                f"Branches of '?:' differ in kind: {if_true.kind.value} and {if_false.kind.value}"
            )
        merged = tuple(np.where(mask, t, f) for t, f in zip(if_true.components, if_false.components))
        return Value(if_true.kind, merged)

    def _call(self, expr: Function) -> Value:
        builtin = BUILTINS[expr.name]
        n = len(expr.args)
        if not builtin.accepts(n):
            raise ArityError(
                f"{expr.name.value} takes {builtin.describe_arity()} arguments, got {n}"
            )
        args: list[np.ndarray] = []
        for i, arg in enumerate(expr.args):
            value = self.eval_expr(arg)
            if value.kind != ValueKind.SCALAR:
                raise TypeMismatchError(
                    f"Argument {i + 1} of {expr.name.value} must be a scalar, got {value.kind.value}"
                )
            args.append(value.data)
        return builtin.handler(args, self.angles)


def _operand_error(op: BinOp, lhs: Value, rhs: Value | None) -> TypeMismatchError:
    kinds = lhs.kind.value if rhs is None else f"{lhs.kind.value} and {rhs.kind.value}"
    return TypeMismatchError(f"Operator '{op.value}' cannot be applied to {kinds}")


def _merge_env(mask: np.ndarray, taken: dict[str, Value], other: dict[str, Value]) -> dict[str, Value]:
    """Per-point merge: bindings from *taken* where *mask* holds, from *other* elsewhere.

    Expressions only rebind existing scalars (``n++``), so both environments
    hold the same names with the same kinds.
    """
    merged: dict[str, Value] = {}
    for name, value in taken.items():
        alternative = other[name]
        if value is alternative:
            merged[name] = value
        else:
            merged[name] = Value(
                value.kind,
                tuple(np.where(mask, a, b) for a, b in zip(value.components, alternative.components)),
            )
    return merged
