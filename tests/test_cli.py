"""CLI and protoc plugin tests for prost-codegen.

Tests cover:
- Argument parsing
- Output files per package
- File selection
- Error handling for inconsistent descriptors
- Plugin parameters and responses
"""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import F, new_field, new_file, new_message_field
from google.protobuf.compiler.plugin_pb2 import CodeGeneratorRequest, CodeGeneratorResponse
from google.protobuf.descriptor_pb2 import DescriptorProto, FileDescriptorProto, FileDescriptorSet

from prost_codegen.cli import main, setup_parser
from prost_codegen.config import Config
from prost_codegen.plugin import parse_parameter, process
from prost_codegen.run import generate_modules, module_file_name
from prost_codegen.service import TraitServiceGenerator


def _files() -> list[FileDescriptorProto]:
    return [
        new_file(
            "my.pkg",
            name="my/pkg/a.proto",
            messages=[DescriptorProto(name="A", field=[new_message_field("b", 1, ".my.pkg.B")])],
        ),
        new_file("my.pkg", name="my/pkg/b.proto", messages=[DescriptorProto(name="B", field=[new_field("id", 1)])]),
        new_file("", name="root.proto", messages=[DescriptorProto(name="Root")]),
    ]


@pytest.fixture
def descriptor_set(tmp_path) -> Path:
    """Write a serialized descriptor set, as protoc --descriptor_set_out does."""
    path = tmp_path / "set.pb"
    path.write_bytes(FileDescriptorSet(file=_files()).SerializeToString())
    return path


class TestArguments:
    def test_defaults(self):
        args = setup_parser().parse_args(["-d", "set.pb"])

        assert args.descriptor_sets == ["set.pb"]
        assert args.files == []
        assert args.output_dir == "."
        assert args.type_attributes == []
        assert not args.retain_enum_prefix
        assert not args.services

    def test_repeated_rules(self):
        args = setup_parser().parse_args(
            ["-d", "set.pb", "--type-attribute", ".=#[a]", "--type-attribute", "M=#[b]", "--btree-map", "."]
        )

        assert args.type_attributes == [".=#[a]", "M=#[b]"]
        assert args.btree_map == ["."]

    def test_descriptor_set_is_required(self):
        with pytest.raises(SystemExit):
            setup_parser().parse_args([])


class TestMain:
    def test_writes_one_file_per_package(self, descriptor_set, tmp_path):
        output_dir = tmp_path / "out"

        assert main(["-d", str(descriptor_set), "-o", str(output_dir)]) == 0

        assert sorted(path.name for path in output_dir.iterdir()) == ["_.rs", "my.pkg.rs"]
        content = (output_dir / "my.pkg.rs").read_text()
        assert content.index("pub struct A {") < content.index("pub struct B {")
        assert "pub struct Root {" in (output_dir / "_.rs").read_text()

    def test_file_selection(self, descriptor_set, tmp_path):
        output_dir = tmp_path / "out"

        assert main(["-d", str(descriptor_set), "-o", str(output_dir), "-f", "my/pkg/b.proto"]) == 0

        assert [path.name for path in output_dir.iterdir()] == ["my.pkg.rs"]
        assert "pub struct A" not in (output_dir / "my.pkg.rs").read_text()

    def test_unknown_file(self, descriptor_set, tmp_path):
        assert main(["-d", str(descriptor_set), "-o", str(tmp_path), "-f", "missing.proto"]) == 2

    def test_inconsistent_descriptor(self, tmp_path):
        path = tmp_path / "set.pb"
        broken = new_file(syntax="editions")
        path.write_bytes(FileDescriptorSet(file=[broken]).SerializeToString())
        output_dir = tmp_path / "out"

        assert main(["-d", str(path), "-o", str(output_dir)]) == 1
        assert not output_dir.exists()

    def test_options(self, descriptor_set, tmp_path):
        output_dir = tmp_path / "out"

        args = ["-d", str(descriptor_set), "-o", str(output_dir), "--type-attribute", ".my.pkg.B=#[derive(Eq)]"]
        assert main(args) == 0

        assert "#[derive(Eq)]\npub struct B {" in (output_dir / "my.pkg.rs").read_text()


class TestGenerateModules:
    def test_module_file_names(self):
        assert module_file_name(("my", "pkg")) == "my.pkg.rs"
        assert module_file_name(()) == "_.rs"

    def test_files_of_one_package_are_concatenated(self):
        modules = generate_modules(Config(), _files())

        assert list(modules) == [("my", "pkg"), ()]
        assert modules[("my", "pkg")].count("#[derive(Clone, PartialEq, Message)]") == 2


class TestPlugin:
    def test_parse_parameter(self):
        config = parse_parameter(
            "btree_map=.,type_attribute=.pkg.M=#[derive(Eq)],extern_path=.a.B=::a::B,retain_enum_prefix,services"
        )

        assert config.btree_map == (".",)
        assert config.type_attributes == ((".pkg.M", "#[derive(Eq)]"),)
        assert dict(config.extern_paths) == {".a.B": "::a::B"}
        assert not config.strip_enum_prefix
        assert config.well_known_types
        assert isinstance(config.service_generator, TraitServiceGenerator)

    def test_parse_empty_parameter(self):
        assert parse_parameter("") == Config()

    def test_unknown_parameter(self):
        with pytest.raises(ValueError, match="unknown_option"):
            parse_parameter("unknown_option")

    def test_process(self):
        request = CodeGeneratorRequest(
            file_to_generate=["my/pkg/a.proto", "root.proto"], proto_file=_files(), parameter="compile_well_known_types"
        )

        response = process(request)

        assert not response.error
        assert response.supported_features == CodeGeneratorResponse.Feature.FEATURE_PROTO3_OPTIONAL
        assert [file.name for file in response.file] == ["my.pkg.rs", "_.rs"]
        assert "pub struct B" not in response.file[0].content

    def test_process_reports_errors(self):
        message = DescriptorProto(name="M", field=[new_field("a", 1, F.TYPE_INT32, oneof_index=0)])
        request = CodeGeneratorRequest(file_to_generate=["pkg.proto"], proto_file=[new_file(messages=[message])])

        response = process(request)

        assert "oneof" in response.error
        assert len(response.file) == 0
