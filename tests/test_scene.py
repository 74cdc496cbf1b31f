"""Tests for scene schema models, scene loading and probe checks."""

from __future__ import annotations

import math

import pytest
from pydantic import ValidationError

from sdfscript.errors import SceneError
from sdfscript.models import Angles, CodegenOptions, Probe, SceneSpec
from sdfscript.scene import check_probes, is_scene_file, load_program, load_scene


class TestModels:
    def test_scene_defaults(self):
        scene = SceneSpec(version="0.1", source="x")
        assert scene.angles == Angles(a0=0.0, a1=0.0)
        assert scene.codegen.target == "python"
        assert scene.codegen.width == 100
        assert scene.codegen.function_name == "signed_distance_function"
        assert scene.probes == []
        assert scene.camera is None

    def test_blank_source_rejected(self):
        with pytest.raises(ValidationError, match="source must not be empty"):
            SceneSpec(version="0.1", source="  \n")

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError, match="extra"):
            SceneSpec(version="0.1", source="x", colour="red")

    def test_unknown_target_rejected(self):
        with pytest.raises(ValidationError):
            CodegenOptions(target="glsl")

    def test_width_must_be_positive(self):
        with pytest.raises(ValidationError):
            CodegenOptions(width=0)

    def test_function_name_must_be_identifier(self):
        with pytest.raises(ValidationError, match="valid identifier"):
            CodegenOptions(function_name="my sdf")

    def test_probe_point_is_three_numbers(self):
        assert Probe(point=[1, 2, 3], expect=0).point == (1.0, 2.0, 3.0)
        with pytest.raises(ValidationError):
            Probe(point=[1, 2], expect=0)

    def test_negative_tolerance_rejected(self):
        with pytest.raises(ValidationError):
            Probe(point=(0, 0, 0), expect=0, tolerance=-1)


class TestProbeMatches:
    def test_within_tolerance(self):
        probe = Probe(point=(0, 0, 0), expect=1.0, tolerance=0.01)
        assert probe.matches(1.005)
        assert not probe.matches(1.02)

    def test_default_tolerance(self):
        probe = Probe(point=(0, 0, 0), expect=1.0)
        assert probe.tolerance == 1e-6
        assert probe.matches(1.0 + 1e-7)
        assert not probe.matches(1.0 + 1e-5)

    def test_nan_expectation(self):
        probe = Probe(point=(0, 0, 0), expect=math.nan)
        assert probe.matches(math.nan)
        assert not probe.matches(0.0)


class TestLoadScene:
    def test_load_from_string(self, scene_yaml):
        scene = load_scene(scene_yaml)
        assert scene.version == "0.1"
        assert scene.name == "sphere_and_torus"
        assert scene.angles.a0 == 0.1
        assert scene.camera == (0.0, 20.0, -80.0)
        assert scene.codegen.width == 80
        assert len(scene.probes) == 2

    def test_load_from_file(self, scene_yaml, tmp_path):
        f = tmp_path / "scene.sdf.yaml"
        f.write_text(scene_yaml)
        assert load_scene(f).name == "sphere_and_torus"

    def test_numeric_version_coerced(self):
        assert load_scene("version: 0.1\nsource: x\n").version == "0.1"

    def test_reject_invalid_yaml(self):
        with pytest.raises(SceneError, match="Invalid YAML"):
            load_scene("{{{{not valid yaml")

    def test_reject_non_dict(self):
        with pytest.raises(SceneError, match="mapping"):
            load_scene("- item1\n- item2")

    def test_missing_version(self):
        with pytest.raises(SceneError, match="Missing required field: version"):
            load_scene("source: x\n")

    def test_unsupported_version(self):
        with pytest.raises(SceneError, match=r"Unsupported version: '0.2' \(latest supported is 0.1\)"):
            load_scene('version: "0.2"\nsource: x\n')

    def test_unsupported_major_version(self):
        with pytest.raises(SceneError, match="Unsupported version"):
            load_scene('version: "1.0"\nsource: x\n')

    def test_invalid_version_format(self):
        with pytest.raises(SceneError, match="Invalid version"):
            load_scene('version: "abc"\nsource: x\n')

    def test_duplicate_keys_rejected(self):
        with pytest.raises(SceneError, match="Invalid YAML"):
            load_scene('version: "0.1"\nsource: x\nsource: y\n')

    def test_schema_error_wrapped(self):
        with pytest.raises(SceneError, match="Schema validation"):
            load_scene('version: "0.1"\nsource: x\nangles:\n  a2: 1\n')

    def test_file_not_found(self, tmp_path):
        with pytest.raises(SceneError, match="Cannot read"):
            load_scene(tmp_path / "missing.sdf.yaml")


class TestLoadProgram:
    def test_plain_source_wrapped(self, tmp_path, reference_scene):
        f = tmp_path / "torus.sdf"
        f.write_text(reference_scene)
        scene = load_program(f)
        assert scene.source == reference_scene
        assert scene.name == "torus"
        assert scene.version == "0.1"

    def test_scene_file_detected(self, tmp_path, scene_yaml):
        f = tmp_path / "scene.sdf.yml"
        f.write_text(scene_yaml)
        assert load_program(f).name == "sphere_and_torus"

    def test_empty_source_rejected(self, tmp_path):
        f = tmp_path / "empty.sdf"
        f.write_text("\n")
        with pytest.raises(SceneError, match="empty"):
            load_program(f)

    @pytest.mark.parametrize(
        "name, expected",
        [("a.sdf.yaml", True), ("a.sdf.yml", True), ("a.yaml", False), ("a.sdf", False)],
    )
    def test_is_scene_file(self, tmp_path, name, expected):
        assert is_scene_file(tmp_path / name) is expected


class TestCheckProbes:
    def test_reference_probes_pass(self, scene_yaml):
        results = check_probes(load_scene(scene_yaml))
        assert [r.ok for r in results] == [True, True]
        assert results[1].actual == pytest.approx(-12.0)

    def test_mismatch_reported(self, scene_yaml):
        scene = load_scene(scene_yaml.replace("expect: -12", "expect: -11"))
        results = check_probes(scene)
        assert [r.ok for r in results] == [True, False]

    def test_angles_used(self):
        scene = load_scene(
            'version: "0.1"\nsource: "x + a0 * 10 + a1"\n'
            "angles: {a0: 0.5, a1: 2}\nprobes:\n  - point: [1, 0, 0]\n    expect: 8\n"
        )
        (result,) = check_probes(scene)
        assert result.ok
        assert result.actual == 8.0
