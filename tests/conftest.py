"""Pytest configuration and descriptor builders for the prost code generator tests.

Descriptors are built programmatically, so the suite needs neither protoc nor rustc.
"""

from __future__ import annotations

from collections.abc import Iterable

from google.protobuf.descriptor_pb2 import (
    DescriptorProto,
    EnumDescriptorProto,
    EnumValueDescriptorProto,
    FieldDescriptorProto,
    FileDescriptorProto,
    MessageOptions,
)

from prost_codegen.config import Config
from prost_codegen.message_graph import MessageGraph
from prost_codegen.writer import generate

F = FieldDescriptorProto

Path = tuple[int, ...]


def new_field(
    name: str,
    number: int,
    type: int = F.TYPE_INT32,
    label: int = F.LABEL_OPTIONAL,
    type_name: str | None = None,
    **kwargs,
) -> FieldDescriptorProto:
    """Create a field descriptor; `type_name` is required for message and enum fields."""
    field = FieldDescriptorProto(name=name, number=number, type=type, label=label, **kwargs)
    if type_name is not None:
        field.type_name = type_name
    return field


def new_message_field(name: str, number: int, type_name: str, **kwargs) -> FieldDescriptorProto:
    return new_field(name, number, F.TYPE_MESSAGE, type_name=type_name, **kwargs)


def new_enum(name: str, values: Iterable[tuple[str, int]]) -> EnumDescriptorProto:
    return EnumDescriptorProto(
        name=name, value=[EnumValueDescriptorProto(name=value, number=number) for value, number in values]
    )


def new_map_entry(
    name: str, key_type: int, value_type: int, value_type_name: str | None = None
) -> DescriptorProto:
    """Create the synthetic nested message that protoc generates for a map field."""
    return DescriptorProto(
        name=name,
        field=[
            new_field("key", 1, key_type),
            new_field("value", 2, value_type, type_name=value_type_name),
        ],
        options=MessageOptions(map_entry=True),
    )


def declaration_paths(file: FileDescriptorProto) -> list[Path]:
    """All structural paths of the declarations of a file, in depth-first pre-order."""
    paths: list[Path] = []

    def visit_enum(path: Path, enum: EnumDescriptorProto) -> None:
        paths.append(path)
        for index in range(len(enum.value)):
            paths.append((*path, 2, index))

    def visit_message(path: Path, message: DescriptorProto) -> None:
        paths.append(path)
        for index in range(len(message.field)):
            paths.append((*path, 2, index))
        for index, nested in enumerate(message.nested_type):
            visit_message((*path, 3, index), nested)
        for index, enum in enumerate(message.enum_type):
            visit_enum((*path, 4, index), enum)
        for index in range(len(message.oneof_decl)):
            paths.append((*path, 8, index))

    for index, message in enumerate(file.message_type):
        visit_message((4, index), message)
    for index, enum in enumerate(file.enum_type):
        visit_enum((5, index), enum)
    for index, service in enumerate(file.service):
        paths.append((6, index))
        for method_index in range(len(service.method)):
            paths.append((6, index, 2, method_index))

    return paths


def with_source_info(
    file: FileDescriptorProto,
    comments: dict[Path, str] | None = None,
    trailing: dict[Path, str] | None = None,
    omit: Iterable[Path] = (),
) -> FileDescriptorProto:
    """Fill the source code info of a file with a location for every declaration.

    Locations are added in reverse order, together with a few locations that do not address
    a declaration (the file itself, and an odd-length name path), as protoc reports them.

    Args:
        file (FileDescriptorProto): The file, modified in place.
        comments (dict[Path, str] | None): Leading comments by path.
        trailing (dict[Path, str] | None): Trailing comments by path.
        omit (Iterable[Path]): Declaration paths to leave out.

    Returns:
        FileDescriptorProto: The same file.
    """
    comments = comments or {}
    trailing = trailing or {}
    omitted = set(omit)

    file.source_code_info.SetInParent()
    file.source_code_info.location.add(path=[])
    file.source_code_info.location.add(path=[12])

    for path in reversed(declaration_paths(file)):
        if path in omitted:
            continue
        location = file.source_code_info.location.add(path=list(path))
        if path in comments:
            location.leading_comments = comments[path]
        if path in trailing:
            location.trailing_comments = trailing[path]

    return file


def new_file(
    package: str = "pkg",
    syntax: str = "proto3",
    messages: Iterable[DescriptorProto] = (),
    enums: Iterable[EnumDescriptorProto] = (),
    name: str | None = None,
    **kwargs,
) -> FileDescriptorProto:
    """Create a file descriptor with source info for all of its declarations."""
    file = FileDescriptorProto(
        name=name or f"{package.replace('.', '/') or 'root'}.proto",
        package=package,
        syntax=syntax,
        message_type=list(messages),
        enum_type=list(enums),
        **kwargs,
    )
    return with_source_info(file)


def render(file: FileDescriptorProto, config: Config | None = None, *others: FileDescriptorProto) -> str:
    """Generate a file with a message graph over the file and `others`."""
    return generate(config or Config(), MessageGraph([file, *others]), file)
