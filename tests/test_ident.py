"""Tests for identifier casing, matching and relative name resolution."""

from __future__ import annotations

import pytest

from prost_codegen.ident import match_ident, relative_path, resolve_ident, to_snake, to_upper_camel
from prost_codegen.proto_types import SchemaConsistencyError


class TestCasing:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("foo_bar", "foo_bar"),
            ("FooBar", "foo_bar"),
            ("fooBar", "foo_bar"),
            ("HTTPServer", "http_server"),
            ("Outer", "outer"),
            ("field1", "field1"),
            ("type", "type_"),
            ("Self", "self_"),
        ],
    )
    def test_to_snake(self, name, expected):
        assert to_snake(name) == expected

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("foo_bar", "FooBar"),
            ("FooBar", "FooBar"),
            ("MY_ENUM_VALUE", "MyEnumValue"),
            ("HTTPServer", "HttpServer"),
            ("nums", "Nums"),
            ("self", "Self_"),
        ],
    )
    def test_to_upper_camel(self, name, expected):
        assert to_upper_camel(name) == expected


class TestMatchIdent:
    def test_root_matches_everything(self):
        assert match_ident(".", ".my.pkg.Foo")
        assert match_ident(".", ".my.pkg.Foo", "bar")

    def test_empty_matches_nothing(self):
        assert not match_ident("", ".my.pkg.Foo")

    def test_fully_qualified_prefix(self):
        assert match_ident(".my.pkg", ".my.pkg.Foo")
        assert match_ident(".my.pkg", ".my.pkg.Foo", "bar")
        assert match_ident(".my.pkg.Foo", ".my.pkg.Foo")
        assert not match_ident(".my.pkg", ".my.pkgs.Foo")
        assert not match_ident(".my.pkg.Foo.bar", ".my.pkg.Foo")

    def test_suffix(self):
        assert match_ident("Foo", ".my.pkg.Foo")
        assert match_ident("Foo.bar", ".my.pkg.Foo", "bar")
        assert not match_ident("Foo.bar", ".my.pkg.Foo", "baz")
        assert not match_ident("Foo", ".my.pkg.Foo", "bar")

    def test_wildcards(self):
        assert match_ident(".my.*.Foo", ".my.pkg.Foo")
        assert match_ident("Fo?", ".my.pkg.Foo")
        assert not match_ident(".other.*", ".my.pkg.Foo")

    def test_requires_fully_qualified_name(self):
        with pytest.raises(SchemaConsistencyError):
            match_ident(".", "my.pkg.Foo")


class TestResolve:
    def test_same_scope_is_bare_name(self):
        assert relative_path(".pkg.a.Target", ["pkg", "a"]) == ["Target"]

    def test_sibling_scope(self):
        assert relative_path(".pkg.a.Target", ["pkg", "a", "c"]) == ["super", "Target"]

    def test_sibling_module(self):
        assert resolve_ident(".pkg.a.b.Target", ["pkg", "a", "c"]) == "super::b::Target"

    def test_nested_type(self):
        assert resolve_ident(".pkg.Outer.Inner", ["pkg"]) == "outer::Inner"

    def test_parent_type(self):
        assert resolve_ident(".pkg.Outer", ["pkg", "Outer"]) == "super::Outer"

    def test_disjoint_scopes(self):
        assert resolve_ident(".other.v1.Thing", ["pkg", "sub"]) == "super::super::other::v1::Thing"

    def test_empty_package(self):
        assert resolve_ident(".Thing", []) == "Thing"
        assert resolve_ident(".Outer.Inner", []) == "outer::Inner"
        assert resolve_ident(".Thing", ["pkg"]) == "super::Thing"

    def test_casing(self):
        assert resolve_ident(".my_pkg.HTTPRequest.header_map", ["other"]) == "super::my_pkg::http_request::HeaderMap"

    def test_requires_fully_qualified_name(self):
        with pytest.raises(SchemaConsistencyError):
            resolve_ident("pkg.Thing", ["pkg"])
