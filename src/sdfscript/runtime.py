"""Host runtime for generated Python code.

Generated functions call these names directly. Each one delegates to
``sdfscript.primitives``; variadic combinators take a single list.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import ArrayLike

from sdfscript import primitives
from sdfscript.nodes import FunctionName

inf = np.inf
nan = np.nan

sin = np.sin
cos = np.cos
tan = np.tan
asin = np.arcsin
acos = np.arccos
atan = np.arctan
atan2 = np.arctan2
sinh = np.sinh
cosh = np.cosh
tanh = np.tanh
asinh = np.arcsinh
acosh = np.arccosh
atanh = np.arctanh
exp = np.exp
exp2 = np.exp2
log = np.log
log2 = np.log2
pow = np.power
sqrt = np.sqrt
abs = np.abs
sign = np.sign
floor = np.floor
ceil = np.ceil
trunc = np.trunc
fract = primitives.fract
round = primitives.round_half_away
mod = primitives.modulo
min = np.minimum
max = np.maximum
clamp = primitives.clamp
mix = primitives.mix
smoothstep = primitives.smoothstep

union = primitives.union
intersect = primitives.intersect
round_min = primitives.round_min
round_max = primitives.round_max

torus = primitives.torus
box2 = primitives.box2
box3 = primitives.box3
triangle = primitives.triangle
fake_sine = primitives.fake_sine
corner = primitives.corner
rot = primitives.rot
add_mul = primitives.add_mul
smooth_abs = primitives.smooth_abs
poly_smooth_abs = primitives.poly_smooth_abs
smooth_clamp = primitives.smooth_clamp
poly_smooth_clamp = primitives.poly_smooth_clamp


def length(*components: ArrayLike) -> np.ndarray:
    return np.sqrt(sum(np.square(c) for c in components))


def distance(*args: ArrayLike) -> np.ndarray:
    half = len(args) // 2
    return length(*(np.subtract(a, b) for a, b in zip(args[:half], args[half:])))


def dot(*args: ArrayLike) -> np.ndarray:
    half = len(args) // 2
    return sum(np.multiply(a, b) for a, b in zip(args[:half], args[half:]))


def cross(
    x1: ArrayLike, y1: ArrayLike, z1: ArrayLike, x2: ArrayLike, y2: ArrayLike, z2: ArrayLike
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    return (
        np.subtract(np.multiply(y1, z2), np.multiply(z1, y2)),
        np.subtract(np.multiply(z1, x2), np.multiply(x1, z2)),
        np.subtract(np.multiply(x1, y2), np.multiply(y1, x2)),
    )


def normalize(*components: ArrayLike) -> tuple[np.ndarray, ...]:
    norm = length(*components)
    return tuple(np.divide(c, norm) for c in components)


def value_noise(*args: ArrayLike) -> np.ndarray:
    """``(x, y, scale, offset)`` or ``(x, y, z, scale, offset[, octaves])``."""
    if len(args) == 4:
        x, y, scale, offset = args
        return primitives.value_noise(x, y, 0.0, scale, offset, 1)
    return primitives.value_noise(*args)


def hash(x: ArrayLike, y: ArrayLike, z: ArrayLike = 0.0) -> np.ndarray:
    return primitives.hash3(x, y, z)


def rot0(x: ArrayLike, y: ArrayLike, turns: ArrayLike) -> tuple[np.ndarray, np.ndarray]:
    return primitives.rotate_turns(x, y, turns)


def rot1(x: ArrayLike, y: ArrayLike, turns: ArrayLike) -> tuple[np.ndarray, np.ndarray]:
    return primitives.rotate_turns(x, y, turns)


HOST_NAMES: frozenset[str] = frozenset(f.host_name for f in FunctionName) | {"inf", "nan"}

_missing = sorted(name for name in HOST_NAMES if name not in globals())
if _missing:
    raise RuntimeError(f"Runtime is missing host functions: {_missing}")


def namespace() -> dict[str, Any]:
    """Fresh globals dict for executing generated code."""
    module_globals = globals()
    return {name: module_globals[name] for name in HOST_NAMES}
