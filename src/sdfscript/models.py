"""Pydantic v2 schema models for sdfscript scene files."""

from __future__ import annotations

import math
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Vec3 = tuple[float, float, float]


class Angles(BaseModel):
    model_config = ConfigDict(extra="forbid")
    a0: float = 0.0
    a1: float = 0.0


class CodegenOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")
    target: Literal["python", "dsl"] = "python"
    width: int = Field(default=100, gt=0)
    function_name: str = "signed_distance_function"

    @field_validator("function_name")
    @classmethod
    def function_name_is_identifier(cls, v: str) -> str:
        if not v.isidentifier():
            raise ValueError(f"function_name must be a valid identifier, got {v!r}")
        return v


class Probe(BaseModel):
    """A sample point with the distance the scene is expected to produce."""

    model_config = ConfigDict(extra="forbid")
    point: Vec3
    expect: float
    tolerance: float = Field(default=1e-6, ge=0.0)

    def matches(self, actual: float) -> bool:
        if math.isnan(self.expect):
            return math.isnan(actual)
        return math.isclose(actual, self.expect, rel_tol=0.0, abs_tol=self.tolerance)


class SceneSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")
    version: str
    name: str | None = None
    source: str
    angles: Angles = Field(default_factory=Angles)
    camera: Vec3 | None = None
    codegen: CodegenOptions = Field(default_factory=CodegenOptions)
    probes: list[Probe] = Field(default_factory=list)

    @field_validator("source")
    @classmethod
    def source_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("source must not be empty")
        return v
