"""Runtime values produced by the evaluator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np
from numpy.typing import ArrayLike


class ValueKind(Enum):
    SCALAR = "scalar"
    BOOLEAN = "boolean"
    VEC2 = "vec2"
    VEC3 = "vec3"


_VECTOR_KINDS = {2: ValueKind.VEC2, 3: ValueKind.VEC3}


@dataclass(frozen=True, eq=False)
class Value:
    """A tagged value.

    ``components`` holds one array for SCALAR/BOOLEAN and one per axis for
    vectors. Each array is 0-d when evaluating a single point and 1-d (one
    entry per point) in batch mode.
    """

    kind: ValueKind
    components: tuple[np.ndarray, ...]

    @classmethod
    def scalar(cls, data: ArrayLike) -> Value:
        return cls(ValueKind.SCALAR, (np.asarray(data, dtype=np.float64),))

    @classmethod
    def boolean(cls, data: ArrayLike) -> Value:
        return cls(ValueKind.BOOLEAN, (np.asarray(data, dtype=bool),))

    @classmethod
    def vector(cls, components: tuple[ArrayLike, ...]) -> Value:
        kind = _VECTOR_KINDS.get(len(components))
        if kind is None:
            raise ValueError(f"Vectors have 2 or 3 components, got {len(components)}")
        return cls(kind, tuple(np.asarray(c, dtype=np.float64) for c in components))

    @property
    def data(self) -> np.ndarray:
        """The single array of a SCALAR or BOOLEAN value."""
        if len(self.components) != 1:
            raise ValueError(f"{self.kind.value} value has no single data array")
        return self.components[0]

    @property
    def is_vector(self) -> bool:
        return self.kind in (ValueKind.VEC2, ValueKind.VEC3)

    def __repr__(self) -> str:
        parts = ", ".join(np.array2string(c, precision=6) for c in self.components)
        return f"Value({self.kind.value}, {parts})"
