"""Numeric SDF building blocks.

Every function takes scalars or numpy arrays and broadcasts, so the same
code serves single-point evaluation, batch evaluation and generated code.
"""

from __future__ import annotations

import math
from collections.abc import Callable

import numpy as np
from numpy.typing import ArrayLike

from sdfscript.errors import EvaluationError

TAU = 2.0 * math.pi
DEFAULT_NOISE_OCTAVES = 4
MAX_NOISE_OCTAVES = 16


# ---------------------------------------------------------------------------
# Scalar helpers
# ---------------------------------------------------------------------------


def fract(x: ArrayLike) -> np.ndarray:
    """Fractional part keeping the sign of *x*: ``x - trunc(x)``."""
    return x - np.trunc(x)


def _fract_floor(x: ArrayLike) -> np.ndarray:
    return x - np.floor(x)


def modulo(a: ArrayLike, b: ArrayLike) -> np.ndarray:
    """Floored modulo: the result takes the sign of *b*."""
    return np.fmod(np.fmod(a, b) + b, b)


def round_half_away(x: ArrayLike) -> np.ndarray:
    """Round to nearest, ties away from zero."""
    return np.sign(x) * np.floor(np.abs(x) + 0.5)


def clamp(x: ArrayLike, lo: ArrayLike, hi: ArrayLike) -> np.ndarray:
    return np.minimum(np.maximum(x, lo), hi)


def mix(a: ArrayLike, b: ArrayLike, t: ArrayLike) -> np.ndarray:
    return a * (1.0 - t) + b * t


def smoothstep(edge0: ArrayLike, edge1: ArrayLike, x: ArrayLike) -> np.ndarray:
    t = clamp((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def triangle(x: ArrayLike) -> np.ndarray:
    """Triangle wave with period 4 and range [-1, 1]."""
    return np.abs(x - np.floor(x / 4.0) * 4.0 - 2.0) - 1.0


def fake_sine(x: ArrayLike) -> np.ndarray:
    """Cheap piecewise-polynomial stand-in for a sine wave."""
    return np.abs((x - np.floor(x) - 0.5) * 2.0) * x * (6.0 - 4.0 * x) - 1.0


def corner(x: ArrayLike, y: ArrayLike) -> np.ndarray:
    """Distance to the quarter-plane x <= 0, y <= 0."""
    return np.where((x > 0) & (y > 0), np.hypot(x, y), np.maximum(x, y))


# ---------------------------------------------------------------------------
# Smooth blends
# ---------------------------------------------------------------------------


def smooth_min(a: ArrayLike, b: ArrayLike, r: ArrayLike) -> np.ndarray:
    """Round union of two distances with blend radius *r*.

    Tends to ``min(a, b)`` as ``r`` goes to zero.
    """
    blended = r - np.hypot(r - a, r - b)
    return np.where((a < r) & (b < r), blended, np.minimum(a, b))


def smooth_max(a: ArrayLike, b: ArrayLike, r: ArrayLike) -> np.ndarray:
    """Round intersection: the mirror image of ``smooth_min``."""
    return -smooth_min(-a, -b, r)


def smooth_abs(x: ArrayLike, p: ArrayLike) -> np.ndarray:
    return np.sqrt(x * x + p)


def poly_smooth_abs(x: ArrayLike, m: ArrayLike) -> np.ndarray:
    """Polynomial smoothing of *x* near zero; *x* itself outside ``[-m, m]``."""
    return np.where(np.abs(x) > m, x, (2.0 - x / m) * x * x / m)


def smooth_clamp(x: ArrayLike, p: ArrayLike, lo: ArrayLike, hi: ArrayLike) -> np.ndarray:
    return (smooth_abs(x - lo, p) - smooth_abs(x - hi, p) + lo + hi) / 2.0


def poly_smooth_clamp(x: ArrayLike, p: ArrayLike, lo: ArrayLike, hi: ArrayLike) -> np.ndarray:
    return (poly_smooth_abs(x - lo, p) - poly_smooth_abs(x - hi, p) + lo + hi) / 2.0


def union(values: list[ArrayLike]) -> np.ndarray:
    return _reduce(np.minimum, values)


def intersect(values: list[ArrayLike]) -> np.ndarray:
    return _reduce(np.maximum, values)


def round_min(values: list[ArrayLike]) -> np.ndarray:
    """Fold ``smooth_min`` over all but the last value, which is the radius.

    With a single value, that value is returned.
    """
    *distances, r = values
    if not distances:
        return r
    return _reduce(lambda a, b: smooth_min(a, b, r), distances)


def round_max(values: list[ArrayLike]) -> np.ndarray:
    *distances, r = values
    if not distances:
        return r
    return _reduce(lambda a, b: smooth_max(a, b, r), distances)


def _reduce(fn: Callable[[ArrayLike, ArrayLike], np.ndarray], values: list[ArrayLike]) -> np.ndarray:
    values = list(values)
    if not values:
        raise ValueError("Combinator needs at least one value")
    result = values[0]
    for v in values[1:]:
        result = fn(result, v)
    return result


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------


def torus(x: ArrayLike, y: ArrayLike, z: ArrayLike, r1: ArrayLike, r2: ArrayLike) -> np.ndarray:
    """Torus around the y axis: ring radius *r1*, tube radius *r2*."""
    qx = np.hypot(x, z) - r1
    return np.hypot(qx, y) - r2


def box2(x: ArrayLike, y: ArrayLike, a: ArrayLike, b: ArrayLike | None = None) -> np.ndarray:
    """2D box with half extents (a, b); *b* defaults to *a*."""
    if b is None:
        b = a
    return corner(np.abs(x) - a, np.abs(y) - b)


def box3(
    x: ArrayLike,
    y: ArrayLike,
    z: ArrayLike,
    a: ArrayLike,
    b: ArrayLike | None = None,
    c: ArrayLike | None = None,
) -> np.ndarray:
    """3D box with half extents (a, b, c); missing extents default to *a*."""
    if b is None:
        b = a
    if c is None:
        c = a
    qx = np.abs(x) - a
    qy = np.abs(y) - b
    qz = np.abs(z) - c
    inside = np.minimum(np.maximum(qx, np.maximum(qy, qz)), 0.0)
    outside = np.sqrt(
        np.maximum(qx, 0.0) ** 2 + np.maximum(qy, 0.0) ** 2 + np.maximum(qz, 0.0) ** 2
    )
    return inside + outside


# ---------------------------------------------------------------------------
# Rotation and offsets
# ---------------------------------------------------------------------------


def rotate_turns(x: ArrayLike, y: ArrayLike, turns: ArrayLike) -> tuple[np.ndarray, np.ndarray]:
    """Rotate (x, y) counter-clockwise by ``turns * TAU`` radians."""
    angle = turns * TAU
    c = np.cos(angle)
    s = np.sin(angle)
    return c * x - s * y, s * x + c * y


def rot(x: ArrayLike, y: ArrayLike, c: ArrayLike, s: ArrayLike) -> tuple[np.ndarray, np.ndarray]:
    """Rotate (x, y) by a precomputed cosine/sine pair."""
    return c * x + s * y, c * y - s * x


def add_mul(*args: ArrayLike) -> tuple[np.ndarray, ...]:
    """``p + d * t`` for 2D ``(x, y, a, b[, t])`` or 3D ``(x, y, z, a, b, c[, t])``."""
    n = len(args)
    if n in (4, 5):
        x, y, a, b = args[:4]
        t = args[4] if n == 5 else 1.0
        return x + a * t, y + b * t
    if n in (6, 7):
        x, y, z, a, b, c = args[:6]
        t = args[6] if n == 7 else 1.0
        return x + a * t, y + b * t, z + c * t
    raise ValueError(f"add_mul takes 4 to 7 arguments, got {n}")


# ---------------------------------------------------------------------------
# Hash and value noise
# ---------------------------------------------------------------------------


def hash3(x: ArrayLike, y: ArrayLike, z: ArrayLike = 0.0) -> np.ndarray:
    """Pseudo-random value in [0, 1) from a lattice point."""
    px = _fract_floor(np.asarray(x, dtype=np.float64) * 0.3183099 + 0.1) * 17.0
    py = _fract_floor(np.asarray(y, dtype=np.float64) * 0.3183099 + 0.1) * 17.0
    pz = _fract_floor(np.asarray(z, dtype=np.float64) * 0.3183099 + 0.1) * 17.0
    return _fract_floor(px * py * pz * (px + py + pz))


def lattice_noise(x: ArrayLike, y: ArrayLike, z: ArrayLike) -> np.ndarray:
    """Trilinear value noise in [-1, 1]."""
    ix, iy, iz = np.floor(x), np.floor(y), np.floor(z)
    fx, fy, fz = x - ix, y - iy, z - iz
    ux = fx * fx * (3.0 - 2.0 * fx)
    uy = fy * fy * (3.0 - 2.0 * fy)
    uz = fz * fz * (3.0 - 2.0 * fz)

    def h(dx: int, dy: int, dz: int) -> np.ndarray:
        return hash3(ix + dx, iy + dy, iz + dz)

    near = mix(mix(h(0, 0, 0), h(1, 0, 0), ux), mix(h(0, 1, 0), h(1, 1, 0), ux), uy)
    far = mix(mix(h(0, 0, 1), h(1, 0, 1), ux), mix(h(0, 1, 1), h(1, 1, 1), ux), uy)
    return mix(near, far, uz) * 2.0 - 1.0


def value_noise(
    x: ArrayLike,
    y: ArrayLike,
    z: ArrayLike,
    scale: ArrayLike,
    offset: ArrayLike,
    octaves: ArrayLike = DEFAULT_NOISE_OCTAVES,
) -> np.ndarray:
    """Fractal sum of ``lattice_noise`` octaves.

    The sample point is ``p * scale + offset``; each octave doubles the
    frequency (times 1.015) and adds weight ``1 / (2 * octave)`` cumulatively.

    *octaves* is truncated toward zero, negative counts give no octaves and
    counts above ``MAX_NOISE_OCTAVES`` are clamped. It may vary per point:
    each point only sums its own octaves.

    Raises:
        EvaluationError: If *octaves* is not finite.
    """
    counts = np.trunc(np.asarray(octaves, dtype=np.float64))
    if not np.all(np.isfinite(counts)):
        raise EvaluationError("value_noise octave count must be finite")
    counts = np.clip(counts, 0, MAX_NOISE_OCTAVES)
    n_octaves = int(np.max(counts))
    px = np.asarray(x, dtype=np.float64) * scale + offset
    py = np.asarray(y, dtype=np.float64) * scale + offset
    pz = np.asarray(z, dtype=np.float64) * scale + offset
    amplitude = 0.0
    total = np.zeros(np.broadcast(px, py, pz, counts).shape)
    for octave in range(1, n_octaves + 1):
        amplitude += 1.0 / (2.0 * octave)
        px, py, pz = px * 2.03, py * 2.03, pz * 2.03
        total = total + np.where(octave <= counts, amplitude * lattice_noise(px, py, pz), 0.0)
    return total
