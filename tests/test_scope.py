"""Tests for the emission state: indentation, module scopes and source paths."""

from __future__ import annotations

import pytest

from prost_codegen.scope import EmissionState, NoParentError


class TestEmissionState:
    def test_modules_indent_and_extend_the_scope(self):
        state = EmissionState("my.pkg")
        state.add("a")
        with state.module("OuterMessage"):
            assert state.package == ("my", "pkg", "OuterMessage")
            assert state.dotted_package == "my.pkg.OuterMessage"
            assert not state.is_root
            state.add("b")
            state.add("")
        state.add("c")

        assert state.is_root
        assert state.dumps() == "a\npub mod outer_message {\n    b\n\n}\nc\n"

    def test_block(self):
        state = EmissionState("")
        with state.block("pub struct M"):
            state.add("pub id: i32,")

        assert state.dumps() == "pub struct M {\n    pub id: i32,\n}\n"

    def test_pop_at_root(self):
        state = EmissionState("pkg")

        with pytest.raises(NoParentError):
            state.pop_mod()

    def test_path_is_restored_on_error(self):
        state = EmissionState("pkg")

        with state.at(4, 0):
            with pytest.raises(RuntimeError):
                with state.at(2, 1):
                    assert state.path == (4, 0, 2, 1)
                    raise RuntimeError("abort")
            assert state.path == (4, 0)

        assert state.path == ()

    def test_depth_is_restored_on_error(self):
        state = EmissionState("pkg")

        with pytest.raises(RuntimeError):
            with state.module("M"):
                with state.indented():
                    assert state.depth == 2
                    raise RuntimeError("abort")

        assert state.depth == 0
        assert state.package == ("pkg",)

    def test_dumps_requires_closed_scopes(self):
        state = EmissionState("pkg")
        state.push_mod("M")

        with pytest.raises(NoParentError, match="still open"):
            state.dumps()
