"""AST node types for sdfscript programs.

Nodes are frozen dataclasses with tuple children, so equal source text
parses to equal (and hashable) trees.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BinOp(Enum):
    """Binary operators. The value is the operator's DSL spelling."""

    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    EQ = "=="
    NOT_EQ = "!="
    GREATER = ">"
    GREATER_EQ = ">="
    LESS = "<"
    LESS_EQ = "<="
    AND = "&&"
    OR = "||"
    POW = "**"


class IncDec(Enum):
    INCREMENT = "++"
    DECREMENT = "--"


class FunctionName(Enum):
    """Builtin function tags."""

    SIN = "sin"
    COS = "cos"
    TAN = "tan"
    ASIN = "asin"
    ACOS = "acos"
    ATAN = "atan"
    ATAN2 = "atan2"
    SINH = "sinh"
    COSH = "cosh"
    TANH = "tanh"
    ASINH = "asinh"
    ACOSH = "acosh"
    ATANH = "atanh"
    EXP = "exp"
    EXP2 = "exp2"
    LOG = "log"
    LOG2 = "log2"
    POW = "pow"
    SQRT = "sqrt"
    ABS = "abs"
    SIGN = "sign"
    FLOOR = "floor"
    CEIL = "ceil"
    TRUNC = "trunc"
    FRACT = "fract"
    ROUND = "round"
    MOD = "mod"
    MIN = "min"
    MAX = "max"
    CLAMP = "clamp"
    MIX = "mix"
    SMOOTHSTEP = "smoothstep"
    LENGTH = "length"
    DISTANCE = "distance"
    DOT = "dot"
    CROSS = "cross"
    NORMALIZE = "normalize"
    UNION = "union"
    INTERSECT = "intersect"
    ROUND_MIN = "round_min"
    ROUND_MAX = "round_max"
    TORUS = "torus"
    BOX2 = "box2"
    BOX3 = "box3"
    VALUE_NOISE = "value_noise"
    ROT0 = "rot0"
    ROT1 = "rot1"
    ROT = "rot"
    TRIANGLE = "triangle"
    CORNER = "corner"
    HASH = "hash"
    ADD_MUL = "add_mul"
    FAKE_SINE = "fake_sine"
    SMOOTH_ABS = "smooth_abs"
    POLY_SMOOTH_ABS = "poly_smooth_abs"
    SMOOTH_CLAMP = "smooth_clamp"
    POLY_SMOOTH_CLAMP = "poly_smooth_clamp"

    @property
    def host_name(self) -> str:
        """Name of the matching function in the generated-code runtime."""
        return self.value


# Combinators whose argument list is emitted as a single list literal.
VARIADIC_FUNCTIONS: frozenset[FunctionName] = frozenset(
    {
        FunctionName.UNION,
        FunctionName.INTERSECT,
        FunctionName.ROUND_MIN,
        FunctionName.ROUND_MAX,
    }
)


# ---------------------------------------------------------------------------
# Binding powers, shared by the parser and the code generator
# ---------------------------------------------------------------------------

# (left, right) binding power. Left < right means left-associative.
TERNARY_BINDING_POWER = (2, 1)
BINARY_BINDING_POWER: dict[BinOp, tuple[int, int]] = {
    BinOp.OR: (3, 4),
    BinOp.AND: (5, 6),
    BinOp.EQ: (7, 8),
    BinOp.NOT_EQ: (7, 8),
    BinOp.GREATER: (9, 10),
    BinOp.GREATER_EQ: (9, 10),
    BinOp.LESS: (9, 10),
    BinOp.LESS_EQ: (9, 10),
    BinOp.ADD: (11, 12),
    BinOp.SUB: (11, 12),
    BinOp.MUL: (13, 14),
    BinOp.DIV: (13, 14),
    BinOp.POW: (16, 15),
}
PREFIX_BINDING_POWER = 17
POSTFIX_BINDING_POWER = 19

RIGHT_ASSOCIATIVE: frozenset[BinOp] = frozenset({BinOp.POW})


def precedence(op: BinOp) -> int:
    """Precedence rank of a binary operator (higher binds tighter)."""
    return min(BINARY_BINDING_POWER[op])


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class BinaryOp:
    op: BinOp
    lhs: Expr
    rhs: Expr


@dataclass(frozen=True)
class Negate:
    operand: Expr


@dataclass(frozen=True)
class Function:
    name: FunctionName
    args: tuple[Expr, ...]


@dataclass(frozen=True)
class TernaryOp:
    condition: Expr
    if_true: Expr
    if_false: Expr


@dataclass(frozen=True)
class AssignExpr:
    """Postfix ``name++`` / ``name--``: rebinds *name* and yields the new value."""

    name: str
    op: IncDec


Expr = Number | Variable | BinaryOp | Negate | Function | TernaryOp | AssignExpr


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Assign:
    name: str
    expr: Expr


@dataclass(frozen=True)
class AssignToArray:
    """``[a, b, c] = expr``: one vector value fanned out into scalar bindings."""

    names: tuple[str, ...]
    expr: Expr


@dataclass(frozen=True)
class AssignFromArray:
    """``[a, b] = [e1, e2]``: each expression bound to the name at its index."""

    names: tuple[str, ...]
    exprs: tuple[Expr, ...]


@dataclass(frozen=True)
class Sequence:
    statements: tuple[Statement, ...]


@dataclass(frozen=True)
class Return:
    expr: Expr


@dataclass(frozen=True)
class Empty:
    pass


Statement = Assign | AssignToArray | AssignFromArray | Sequence | Return | Empty
