"""Tests for the builtin registry."""

from __future__ import annotations

import pytest

from sdfscript.functions import BUILTINS, Builtin, _build_registry
from sdfscript.nodes import VARIADIC_FUNCTIONS, FunctionName


class TestRegistry:
    def test_every_function_registered(self):
        assert set(BUILTINS) == set(FunctionName)

    def test_variadics_use_lower_bound(self):
        for name in VARIADIC_FUNCTIONS:
            assert BUILTINS[name].at_least is not None

    def test_duplicate_rejected(self):
        table = [BUILTINS[f] for f in FunctionName] + [BUILTINS[FunctionName.SIN]]
        with pytest.raises(RuntimeError, match="Duplicate builtin registration: SIN"):
            _build_registry(table)

    def test_missing_rejected(self):
        table = [BUILTINS[f] for f in FunctionName if f != FunctionName.TORUS]
        with pytest.raises(RuntimeError, match="Unregistered builtins.*TORUS"):
            _build_registry(table)


class TestArity:
    @pytest.mark.parametrize(
        "name, accepted, rejected",
        [
            (FunctionName.SIN, [1], [0, 2]),
            (FunctionName.LENGTH, [2, 3], [1, 4]),
            (FunctionName.BOX2, [3, 4], [2, 5]),
            (FunctionName.BOX3, [4, 5, 6], [3, 7]),
            (FunctionName.ADD_MUL, [4, 5, 6, 7], [3, 8]),
            (FunctionName.VALUE_NOISE, [4, 5, 6], [3, 7]),
            (FunctionName.UNION, [1, 2, 9], [0]),
            (FunctionName.ROUND_MIN, [2, 3], [1]),
            (FunctionName.ROT0, [2], [3]),
            (FunctionName.TORUS, [5], [4, 6]),
        ],
    )
    def test_accepts(self, name, accepted, rejected):
        builtin = BUILTINS[name]
        assert all(builtin.accepts(n) for n in accepted)
        assert not any(builtin.accepts(n) for n in rejected)

    @pytest.mark.parametrize(
        "name, text",
        [
            (FunctionName.SIN, "1"),
            (FunctionName.LENGTH, "2 or 3"),
            (FunctionName.BOX3, "4, 5 or 6"),
            (FunctionName.INTERSECT, "at least 1"),
            (FunctionName.ROUND_MAX, "at least 2"),
        ],
    )
    def test_describe_arity(self, name, text):
        assert BUILTINS[name].describe_arity() == text

    def test_builtin_without_counts(self):
        builtin = Builtin(FunctionName.SIN, BUILTINS[FunctionName.SIN].handler)
        assert not builtin.accepts(1)
