"""Scene file loading and probe checking."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from sdfscript.errors import SceneError
from sdfscript.evaluator import evaluate
from sdfscript.models import Probe, SceneSpec
from sdfscript.parser import parse_source
from sdfscript.warning_policy import WarningPolicy

SCENE_SUFFIXES = (".sdf.yaml", ".sdf.yml")
LATEST_VERSION = (0, 1)


def _make_yaml() -> YAML:
    """Create a ruamel.yaml safe loader that errors on duplicate keys."""
    yml = YAML(typ="safe")
    yml.allow_duplicate_keys = False
    return yml


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise SceneError(f"Cannot read file: {e}") from e


def is_scene_file(path: Path) -> bool:
    return path.name.endswith(SCENE_SUFFIXES)


def load_scene(source: str | Path) -> SceneSpec:
    """Parse a scene from YAML text or a ``.sdf.yaml`` path.

    Raises:
        SceneError: On YAML syntax errors, schema violations, or version mismatches.
    """
    text = _read_text(source) if isinstance(source, Path) else source
    try:
        data = _make_yaml().load(text)
    except YAMLError as e:
        raise SceneError(f"Invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise SceneError("Top-level YAML value must be a mapping")

    version = data.get("version")
    if version is None:
        raise SceneError("Missing required field: version")
    data["version"] = str(version)
    _check_version(data["version"])

    try:
        return SceneSpec(**data)
    except PydanticValidationError as e:
        raise SceneError(f"Schema validation failed:\n{e}") from e


def load_program(path: Path) -> SceneSpec:
    """Load *path* as a scene file, or wrap a plain DSL file in a default scene."""
    if is_scene_file(path):
        return load_scene(path)
    text = _read_text(path)
    if not text.strip():
        raise SceneError(f"Source file is empty: {path}")
    return SceneSpec(version="0.1", name=path.stem, source=text)


def _check_version(version: str) -> None:
    """Validate version string compatibility."""
    parts = version.split(".")
    if len(parts) != 2:
        raise SceneError(f"Invalid version format: {version!r}")

    try:
        major = int(parts[0])
        minor = int(parts[1])
    except ValueError:
        raise SceneError(f"Invalid version format: {version!r}") from None

    if (major, minor) > LATEST_VERSION:
        latest = ".".join(str(p) for p in LATEST_VERSION)
        raise SceneError(f"Unsupported version: {version!r} (latest supported is {latest})")


# ---------------------------------------------------------------------------
# Probes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProbeResult:
    probe: Probe
    actual: float

    @property
    def ok(self) -> bool:
        return self.probe.matches(self.actual)


def check_probes(scene: SceneSpec, *, policy: WarningPolicy | None = None) -> list[ProbeResult]:
    """Evaluate the scene at each probe point."""
    statement = parse_source(scene.source, policy=policy)
    return [
        ProbeResult(probe, evaluate(statement, probe.point, scene.angles.a0, scene.angles.a1))
        for probe in scene.probes
    ]
