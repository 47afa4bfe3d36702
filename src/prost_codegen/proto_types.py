"""Types definitions that are common in protobuf schemas."""

from __future__ import annotations

from enum import Enum

from google.protobuf.descriptor_pb2 import FieldDescriptorProto

Module = tuple[str, ...]
"""A Rust module path, as a sequence of snake case segments."""

PROTO_TYPE_TO_RUST: dict[int, str] = {
    FieldDescriptorProto.TYPE_FLOAT: "f32",
    FieldDescriptorProto.TYPE_DOUBLE: "f64",
    FieldDescriptorProto.TYPE_UINT32: "u32",
    FieldDescriptorProto.TYPE_FIXED32: "u32",
    FieldDescriptorProto.TYPE_UINT64: "u64",
    FieldDescriptorProto.TYPE_FIXED64: "u64",
    FieldDescriptorProto.TYPE_INT32: "i32",
    FieldDescriptorProto.TYPE_SFIXED32: "i32",
    FieldDescriptorProto.TYPE_SINT32: "i32",
    FieldDescriptorProto.TYPE_ENUM: "i32",
    FieldDescriptorProto.TYPE_INT64: "i64",
    FieldDescriptorProto.TYPE_SFIXED64: "i64",
    FieldDescriptorProto.TYPE_SINT64: "i64",
    FieldDescriptorProto.TYPE_BOOL: "bool",
    FieldDescriptorProto.TYPE_STRING: "String",
    FieldDescriptorProto.TYPE_BYTES: "Vec<u8>",
}

# Enumerations are tagged separately, since the tag carries the resolved type path.
PROTO_TYPE_TO_TAG: dict[int, str] = {
    FieldDescriptorProto.TYPE_FLOAT: "float",
    FieldDescriptorProto.TYPE_DOUBLE: "double",
    FieldDescriptorProto.TYPE_INT32: "int32",
    FieldDescriptorProto.TYPE_INT64: "int64",
    FieldDescriptorProto.TYPE_UINT32: "uint32",
    FieldDescriptorProto.TYPE_UINT64: "uint64",
    FieldDescriptorProto.TYPE_SINT32: "sint32",
    FieldDescriptorProto.TYPE_SINT64: "sint64",
    FieldDescriptorProto.TYPE_FIXED32: "fixed32",
    FieldDescriptorProto.TYPE_FIXED64: "fixed64",
    FieldDescriptorProto.TYPE_SFIXED32: "sfixed32",
    FieldDescriptorProto.TYPE_SFIXED64: "sfixed64",
    FieldDescriptorProto.TYPE_BOOL: "bool",
    FieldDescriptorProto.TYPE_STRING: "string",
    FieldDescriptorProto.TYPE_BYTES: "bytes",
    FieldDescriptorProto.TYPE_GROUP: "group",
    FieldDescriptorProto.TYPE_MESSAGE: "message",
}

PACKABLE_TYPES: frozenset[int] = frozenset(
    {
        FieldDescriptorProto.TYPE_FLOAT,
        FieldDescriptorProto.TYPE_DOUBLE,
        FieldDescriptorProto.TYPE_INT32,
        FieldDescriptorProto.TYPE_INT64,
        FieldDescriptorProto.TYPE_UINT32,
        FieldDescriptorProto.TYPE_UINT64,
        FieldDescriptorProto.TYPE_SINT32,
        FieldDescriptorProto.TYPE_SINT64,
        FieldDescriptorProto.TYPE_FIXED32,
        FieldDescriptorProto.TYPE_FIXED64,
        FieldDescriptorProto.TYPE_SFIXED32,
        FieldDescriptorProto.TYPE_SFIXED64,
        FieldDescriptorProto.TYPE_BOOL,
        FieldDescriptorProto.TYPE_ENUM,
    }
)

# Wrapper types carry presence, so they stay optional in proto3 as well.
WRAPPER_TYPES: dict[str, str] = {
    ".google.protobuf.BoolValue": "bool",
    ".google.protobuf.BytesValue": "::std::vec::Vec<u8>",
    ".google.protobuf.DoubleValue": "f64",
    ".google.protobuf.FloatValue": "f32",
    ".google.protobuf.Int32Value": "i32",
    ".google.protobuf.Int64Value": "i64",
    ".google.protobuf.StringValue": "::std::string::String",
    ".google.protobuf.UInt32Value": "u32",
    ".google.protobuf.UInt64Value": "u64",
}

_PROST_TYPES = (
    "Any",
    "Api",
    "DescriptorProto",
    "Duration",
    "Enum",
    "EnumDescriptorProto",
    "EnumOptions",
    "EnumValue",
    "EnumValueDescriptorProto",
    "EnumValueOptions",
    "ExtensionRangeOptions",
    "Field",
    "FieldDescriptorProto",
    "FieldMask",
    "FieldOptions",
    "FileDescriptorProto",
    "FileDescriptorSet",
    "FileOptions",
    "GeneratedCodeInfo",
    "ListValue",
    "MessageOptions",
    "Method",
    "MethodDescriptorProto",
    "MethodOptions",
    "Mixin",
    "NullValue",
    "OneofDescriptorProto",
    "OneofOptions",
    "Option",
    "ServiceDescriptorProto",
    "ServiceOptions",
    "SourceCodeInfo",
    "SourceContext",
    "Struct",
    "Timestamp",
    "Type",
    "UninterpretedOption",
    "Value",
)

WELL_KNOWN_TYPES: dict[str, str] = {
    **WRAPPER_TYPES,
    ".google.protobuf.Empty": "()",
    **{f".google.protobuf.{name}": f"::prost_types::{name}" for name in _PROST_TYPES},
}


class SourcePath:
    """Field numbers used as structural path tags in `SourceCodeInfo` locations."""

    FILE_MESSAGE_TYPE = 4
    FILE_ENUM_TYPE = 5
    FILE_SERVICE = 6

    MESSAGE_FIELD = 2
    MESSAGE_NESTED_TYPE = 3
    MESSAGE_ENUM_TYPE = 4
    MESSAGE_ONEOF_DECL = 8

    ENUM_VALUE = 2

    SERVICE_METHOD = 2


class SchemaConsistencyError(Exception):
    """Raised when a descriptor breaks an invariant that upstream validation should have guaranteed."""

    pass


class Syntax(Enum):
    """The protobuf syntax dialect of a file."""

    PROTO2 = "proto2"
    PROTO3 = "proto3"

    @classmethod
    def parse(cls, syntax: str) -> Syntax:
        """Parse the `syntax` field of a file descriptor.

        An empty string is what protoc reports for files without a syntax statement.

        Args:
            syntax (str): The raw syntax string.

        Raises:
            SchemaConsistencyError: If the dialect is unknown.

        Returns:
            Syntax: The parsed dialect.
        """
        if syntax in ("", "proto2"):
            return cls.PROTO2

        if syntax == "proto3":
            return cls.PROTO3

        raise SchemaConsistencyError(f"unknown syntax: {syntax}")
