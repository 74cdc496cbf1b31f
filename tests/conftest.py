"""Shared fixtures for sdfscript tests."""

from __future__ import annotations

import pytest

from sdfscript.parser import parse_source

REFERENCE_SCENE = "U(L(x+28,y-10,z+8)-12, don(x-cl(x,-15,15),y-18,z-20,10,3))"


@pytest.fixture(autouse=True)
def _fresh_parse_cache():
    """Diagnostics fire on a source's first parse only; start every test cold."""
    parse_source.cache_clear()
    yield
    parse_source.cache_clear()


@pytest.fixture
def reference_scene() -> str:
    return REFERENCE_SCENE


@pytest.fixture
def scene_yaml() -> str:
    return """\
version: "0.1"
name: sphere_and_torus
source: "U(L(x+28,y-10,z+8)-12, don(x-cl(x,-15,15),y-18,z-20,10,3))"
angles:
  a0: 0.1
  a1: 0.2
camera: [0, 20, -80]
codegen:
  target: python
  width: 80
probes:
  - point: [0, 0, 0]
    expect: 17.59126028
    tolerance: 0.0001
  - point: [-28, 10, -8]
    expect: -12
"""
