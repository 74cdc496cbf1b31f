"""Builtin function registry: FunctionName -> handler plus allowed arities."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from sdfscript import primitives
from sdfscript.nodes import FunctionName
from sdfscript.values import Value

Handler = Callable[[list[np.ndarray], tuple[float, float]], Value]


@dataclass(frozen=True)
class Builtin:
    """One builtin: its handler and the argument counts it accepts.

    Handlers receive the evaluated scalar arguments and the ``(a0, a1)``
    angle parameters.
    """

    name: FunctionName
    handler: Handler
    counts: frozenset[int] = frozenset()
    at_least: int | None = None

    def accepts(self, n_args: int) -> bool:
        if self.at_least is not None:
            return n_args >= self.at_least
        return n_args in self.counts

    def describe_arity(self) -> str:
        if self.at_least is not None:
            return f"at least {self.at_least}"
        counts = sorted(self.counts)
        if len(counts) == 1:
            return str(counts[0])
        return ", ".join(str(c) for c in counts[:-1]) + f" or {counts[-1]}"


# ---------------------------------------------------------------------------
# Handler adapters
# ---------------------------------------------------------------------------


def _scalar(fn: Callable[..., np.ndarray]) -> Handler:
    def handler(args: list[np.ndarray], angles: tuple[float, float]) -> Value:
        return Value.scalar(fn(*args))

    return handler


def _vector(fn: Callable[..., tuple[np.ndarray, ...]]) -> Handler:
    def handler(args: list[np.ndarray], angles: tuple[float, float]) -> Value:
        return Value.vector(tuple(fn(*args)))

    return handler


def _variadic(fn: Callable[[list[np.ndarray]], np.ndarray]) -> Handler:
    def handler(args: list[np.ndarray], angles: tuple[float, float]) -> Value:
        return Value.scalar(fn(args))

    return handler


def _rotation(angle_index: int) -> Handler:
    def handler(args: list[np.ndarray], angles: tuple[float, float]) -> Value:
        x, y = args
        return Value.vector(primitives.rotate_turns(x, y, angles[angle_index]))

    return handler


# ---------------------------------------------------------------------------
# Vector helpers
# ---------------------------------------------------------------------------


def _length(*components: np.ndarray) -> np.ndarray:
    return np.sqrt(sum(c * c for c in components))


def _distance(*args: np.ndarray) -> np.ndarray:
    half = len(args) // 2
    return _length(*(a - b for a, b in zip(args[:half], args[half:])))


def _dot(*args: np.ndarray) -> np.ndarray:
    half = len(args) // 2
    return sum(a * b for a, b in zip(args[:half], args[half:]))


def _cross(
    x1: np.ndarray, y1: np.ndarray, z1: np.ndarray, x2: np.ndarray, y2: np.ndarray, z2: np.ndarray
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    return (y1 * z2 - z1 * y2, z1 * x2 - x1 * z2, x1 * y2 - y1 * x2)


def _normalize(*components: np.ndarray) -> tuple[np.ndarray, ...]:
    norm = _length(*components)
    return tuple(c / norm for c in components)


def _value_noise(*args: np.ndarray) -> np.ndarray:
    if len(args) == 4:
        x, y, scale, offset = args
        return primitives.value_noise(x, y, 0.0, scale, offset, 1)
    return primitives.value_noise(*args)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def _one(name: FunctionName, fn: Callable[..., np.ndarray]) -> Builtin:
    return Builtin(name, _scalar(fn), frozenset({1}))


_F = FunctionName

_TABLE: list[Builtin] = [
    _one(_F.SIN, np.sin),
    _one(_F.COS, np.cos),
    _one(_F.TAN, np.tan),
    _one(_F.ASIN, np.arcsin),
    _one(_F.ACOS, np.arccos),
    _one(_F.ATAN, np.arctan),
    _one(_F.SINH, np.sinh),
    _one(_F.COSH, np.cosh),
    _one(_F.TANH, np.tanh),
    _one(_F.ASINH, np.arcsinh),
    _one(_F.ACOSH, np.arccosh),
    _one(_F.ATANH, np.arctanh),
    _one(_F.EXP, np.exp),
    _one(_F.EXP2, np.exp2),
    _one(_F.LOG, np.log),
    _one(_F.LOG2, np.log2),
    _one(_F.SQRT, np.sqrt),
    _one(_F.ABS, np.abs),
    _one(_F.SIGN, np.sign),
    _one(_F.FLOOR, np.floor),
    _one(_F.CEIL, np.ceil),
    _one(_F.TRUNC, np.trunc),
    _one(_F.FRACT, primitives.fract),
    _one(_F.ROUND, primitives.round_half_away),
    _one(_F.TRIANGLE, primitives.triangle),
    _one(_F.FAKE_SINE, primitives.fake_sine),
    Builtin(_F.ATAN2, _scalar(np.arctan2), frozenset({2})),
    Builtin(_F.POW, _scalar(np.power), frozenset({2})),
    Builtin(_F.MOD, _scalar(primitives.modulo), frozenset({2})),
    Builtin(_F.MIN, _scalar(np.minimum), frozenset({2})),
    Builtin(_F.MAX, _scalar(np.maximum), frozenset({2})),
    Builtin(_F.CORNER, _scalar(primitives.corner), frozenset({2})),
    Builtin(_F.CLAMP, _scalar(primitives.clamp), frozenset({3})),
    Builtin(_F.MIX, _scalar(primitives.mix), frozenset({3})),
    Builtin(_F.SMOOTHSTEP, _scalar(primitives.smoothstep), frozenset({3})),
    Builtin(_F.LENGTH, _scalar(_length), frozenset({2, 3})),
    Builtin(_F.DISTANCE, _scalar(_distance), frozenset({4, 6})),
    Builtin(_F.DOT, _scalar(_dot), frozenset({4, 6})),
    Builtin(_F.CROSS, _vector(_cross), frozenset({6})),
    Builtin(_F.NORMALIZE, _vector(_normalize), frozenset({2, 3})),
    Builtin(_F.UNION, _variadic(primitives.union), at_least=1),
    Builtin(_F.INTERSECT, _variadic(primitives.intersect), at_least=1),
    Builtin(_F.ROUND_MIN, _variadic(primitives.round_min), at_least=2),
    Builtin(_F.ROUND_MAX, _variadic(primitives.round_max), at_least=2),
    Builtin(_F.TORUS, _scalar(primitives.torus), frozenset({5})),
    Builtin(_F.BOX2, _scalar(primitives.box2), frozenset({3, 4})),
    Builtin(_F.BOX3, _scalar(primitives.box3), frozenset({4, 5, 6})),
    Builtin(_F.VALUE_NOISE, _scalar(_value_noise), frozenset({4, 5, 6})),
    Builtin(_F.ROT0, _rotation(0), frozenset({2})),
    Builtin(_F.ROT1, _rotation(1), frozenset({2})),
    Builtin(_F.ROT, _vector(primitives.rot), frozenset({4})),
    Builtin(_F.HASH, _scalar(primitives.hash3), frozenset({2, 3})),
    Builtin(_F.ADD_MUL, _vector(primitives.add_mul), frozenset({4, 5, 6, 7})),
    Builtin(_F.SMOOTH_ABS, _scalar(primitives.smooth_abs), frozenset({2})),
    Builtin(_F.POLY_SMOOTH_ABS, _scalar(primitives.poly_smooth_abs), frozenset({2})),
    Builtin(_F.SMOOTH_CLAMP, _scalar(primitives.smooth_clamp), frozenset({4})),
    Builtin(_F.POLY_SMOOTH_CLAMP, _scalar(primitives.poly_smooth_clamp), frozenset({4})),
]


def _build_registry(table: list[Builtin]) -> dict[FunctionName, Builtin]:
    """Index *table* by name, requiring exactly one entry per FunctionName."""
    registry: dict[FunctionName, Builtin] = {}
    for builtin in table:
        if builtin.name in registry:
            raise RuntimeError(f"Duplicate builtin registration: {builtin.name.name}")
        if builtin.at_least is None and not builtin.counts:
            raise RuntimeError(f"Builtin {builtin.name.name} accepts no argument count")
        registry[builtin.name] = builtin
    missing = set(FunctionName) - set(registry)
    if missing:
        raise RuntimeError(f"Unregistered builtins: {sorted(n.name for n in missing)}")
    return registry


BUILTINS: dict[FunctionName, Builtin] = _build_registry(_TABLE)
