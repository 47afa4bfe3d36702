from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, override

if TYPE_CHECKING:
    from google.protobuf.descriptor_pb2 import (
        DescriptorProto,
        FieldDescriptorProto,
        MethodOptions,
        ServiceOptions,
        SourceCodeInfo,
    )


IndexedField = tuple["FieldDescriptorProto", int]
IndexedMessage = tuple["DescriptorProto", int]
MapEntry = tuple["FieldDescriptorProto", "FieldDescriptorProto"]


def _split_lines(comment: str) -> list[str]:
    """Split a comment at newlines only; a trailing newline does not start another line."""
    if not comment:
        return []
    return comment.removesuffix("\n").split("\n")


@dataclass
class Comments:
    """Comments attached to a declaration in the schema source.

    Attributes:
        leading_detached: Blocks of comments above the declaration, separated from it by a blank line.
        leading: Lines of the comment directly above the declaration.
        trailing: Lines of the comment directly after the declaration.
    """

    leading_detached: list[list[str]] = field(default_factory=list)
    leading: list[str] = field(default_factory=list)
    trailing: list[str] = field(default_factory=list)

    @classmethod
    def from_location(cls, location: SourceCodeInfo.Location) -> Comments:
        """Collect the comments of a source location, one entry per line."""
        return cls(
            leading_detached=[_split_lines(block) for block in location.leading_detached_comments],
            leading=_split_lines(location.leading_comments),
            trailing=_split_lines(location.trailing_comments),
        )

    def lines(self) -> list[str]:
        """Render the comments as Rust comment lines, without indentation.

        Detached blocks become regular `//` comments followed by an empty line, leading and
        trailing comments become `///` doc comments, separated by an empty `///` line when
        both are present.

        Returns:
            list[str]: The comment lines.
        """
        out: list[str] = []

        for block in self.leading_detached:
            out.extend(f"//{line}" for line in block)
            out.append("")

        out.extend(f"///{line}" for line in self.leading)

        if self.leading and self.trailing:
            out.append("///")

        out.extend(f"///{line}" for line in self.trailing)

        return out


@dataclass
class Method:
    """A service method, as handed to a service generator.

    Attributes:
        name: The method name in snake case.
        proto_name: The method name as written in the schema.
        comments: The comments attached to the method.
        input_type: The Rust path of the request type, relative to the file's module.
        output_type: The Rust path of the response type, relative to the file's module.
        input_proto_type: The fully-qualified protobuf name of the request type.
        output_proto_type: The fully-qualified protobuf name of the response type.
        client_streaming: Whether the client sends a stream of requests.
        server_streaming: Whether the server sends a stream of responses.
        options: The method options, passed through unexamined.
    """

    name: str
    proto_name: str
    comments: Comments
    input_type: str
    output_type: str
    input_proto_type: str
    output_proto_type: str
    client_streaming: bool
    server_streaming: bool
    options: MethodOptions


@dataclass
class Service:
    """A service, as handed to a service generator.

    Attributes:
        name: The service name in upper camel case.
        proto_name: The service name as written in the schema.
        package: The protobuf package the service is declared in.
        comments: The comments attached to the service.
        methods: The service methods, in declaration order.
        options: The service options, passed through unexamined.
    """

    name: str
    proto_name: str
    package: str
    comments: Comments
    methods: list[Method]
    options: ServiceOptions


class MessagePartition:
    """The members of a message, split the way the message is emitted.

    Every entry keeps the index it had in the descriptor, since that index is part of the
    source path that the entry's comments are looked up by.

    Attributes:
        fields: Fields that are emitted as plain struct fields.
        oneof_fields: Members of each oneof group, keyed by the oneof's declaration index.
        nested_types: Nested messages that are emitted as declarations of their own.
        map_types: Synthetic map entries, keyed by their fully-qualified name, reduced to
            their key and value fields.
    """

    def __init__(self) -> None:
        """Initialize empty collections."""
        self.fields: list[IndexedField] = []
        self.oneof_fields: dict[int, list[IndexedField]] = {}
        self.nested_types: list[IndexedMessage] = []
        self.map_types: dict[str, MapEntry] = {}

    def add_field(self, field: FieldDescriptorProto, index: int) -> None:
        self.fields.append((field, index))

    def add_oneof_field(self, oneof_index: int, field: FieldDescriptorProto, index: int) -> None:
        self.oneof_fields.setdefault(oneof_index, []).append((field, index))

    def add_nested_type(self, message: DescriptorProto, index: int) -> None:
        self.nested_types.append((message, index))

    def add_map_type(self, fq_name: str, key: FieldDescriptorProto, value: FieldDescriptorProto) -> None:
        self.map_types[fq_name] = (key, value)

    @override
    def __repr__(self) -> str:
        """Return a readable representation for debugging."""
        return (
            f"MessagePartition("
            f"fields={len(self.fields)}, "
            f"oneof_fields={len(self.oneof_fields)}, "
            f"nested_types={len(self.nested_types)}, "
            f"map_types={len(self.map_types)})"
        )
