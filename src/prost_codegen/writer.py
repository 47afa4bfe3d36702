"""Generate Rust declarations for the messages, enums and services of a protobuf file.

The output targets the `prost` runtime: every declaration carries the `#[prost(...)]`
attributes that the runtime codec derives its wire format from.
"""

from __future__ import annotations

import bisect
import logging

from google.protobuf.descriptor_pb2 import (
    DescriptorProto,
    EnumDescriptorProto,
    EnumValueDescriptorProto,
    FieldDescriptorProto,
    FileDescriptorProto,
    MethodDescriptorProto,
    OneofDescriptorProto,
    ServiceDescriptorProto,
    SourceCodeInfo,
)

from prost_codegen import helper
from prost_codegen.config import Config
from prost_codegen.ident import resolve_ident, to_snake, to_upper_camel
from prost_codegen.message_graph import MessageGraph
from prost_codegen.proto_types import (
    PACKABLE_TYPES,
    PROTO_TYPE_TO_RUST,
    PROTO_TYPE_TO_TAG,
    WELL_KNOWN_TYPES,
    WRAPPER_TYPES,
    Module,
    SchemaConsistencyError,
    SourcePath,
    Syntax,
)
from prost_codegen.scope import EmissionState
from prost_codegen.writer_dto import Comments, IndexedField, MapEntry, MessagePartition, Method, Service

logger = logging.getLogger(__name__)

MESSAGE_DERIVES = ["Clone", "PartialEq", "Message"]
ONEOF_DERIVES = ["Clone", "Oneof", "PartialEq"]
ENUM_DERIVES = ["Clone", "Copy", "Debug", "PartialEq", "Eq", "Hash", "PartialOrd", "Ord", "Enumeration"]

VEC = "::std::vec::Vec"
OPTION = "::std::option::Option"
BOX = "::std::boxed::Box"
HASH_MAP = "::std::collections::HashMap"
BTREE_MAP = "::std::collections::BTreeMap"


def module(file: FileDescriptorProto) -> Module:
    """The Rust module path that the declarations of a file are emitted into."""
    return tuple(to_snake(segment) for segment in file.package.split(".") if segment)


def generate(config: Config, message_graph: MessageGraph, file: FileDescriptorProto) -> str:
    """Generate the declarations of one file.

    Args:
        config (Config): The customization rules.
        message_graph (MessageGraph): The containment graph of the whole schema set.
        file (FileDescriptorProto): The file, including its source code info.

    Raises:
        SchemaConsistencyError: If the file breaks a descriptor invariant. No partial output is returned.

    Returns:
        str: The emitted declarations.
    """
    writer = Writer(config, message_graph, file)
    writer.generate_all()
    return writer.dumps()


class Writer:
    """A class that handles writing the declarations of one file descriptor."""

    def __init__(self, config: Config, message_graph: MessageGraph, file: FileDescriptorProto):
        """Initialize the writer with a file descriptor.

        Args:
            config (Config): The customization rules.
            message_graph (MessageGraph): The containment graph of the whole schema set.
            file (FileDescriptorProto): The file to generate declarations for.
        """
        if not file.HasField("source_code_info"):
            raise SchemaConsistencyError(f"no source code info for '{file.name}'")

        self._config = config
        self._message_graph = message_graph
        self._file = file
        self.syntax = Syntax.parse(file.syntax)
        self.state = EmissionState(file.package)

        # Only even-length paths address a declaration; sorting allows a binary search by path.
        locations = [
            location for location in file.source_code_info.location if location.path and len(location.path) % 2 == 0
        ]
        locations.sort(key=lambda location: tuple(location.path))
        self._location_paths = [tuple(location.path) for location in locations]
        self._locations = locations

    def _fq_name(self, name: str) -> str:
        package = self.state.dotted_package
        return f".{package}.{name}" if package else f".{name}"

    # ===== Traversal =====

    def generate_all(self) -> None:
        """Generate all top-level messages and enums, then hand the services to the service generator."""
        logger.debug(f"file: {self._file.name!r}, package: {self._file.package!r}")

        for index, message in enumerate(self._file.message_type):
            with self.state.at(SourcePath.FILE_MESSAGE_TYPE, index):
                self.gen_message(message)

        for index, enum in enumerate(self._file.enum_type):
            with self.state.at(SourcePath.FILE_ENUM_TYPE, index):
                self.gen_enum(enum)

        service_generator = self._config.service_generator
        if service_generator is None:
            return

        for index, service in enumerate(self._file.service):
            with self.state.at(SourcePath.FILE_SERVICE, index):
                service_generator.generate(self.describe_service(service), self.state.lines)

        service_generator.finalize(self.state.lines)

    def dumps(self) -> str:
        return self.state.dumps()

    def _partition(self, message: DescriptorProto, fq_message_name: str) -> MessagePartition:
        """Split a message's nested types and fields into the groups they are emitted as.

        Raises:
            SchemaConsistencyError: If a map entry is malformed, or the oneof groups recovered
                from the fields do not match the declared oneofs.
        """
        partition = MessagePartition()

        for index, nested_type in enumerate(message.nested_type):
            if nested_type.options.map_entry:
                fields = list(nested_type.field)
                if [field.name for field in fields] != ["key", "value"]:
                    raise SchemaConsistencyError(
                        f"map entry '{fq_message_name}.{nested_type.name}' must have exactly the fields "
                        f"'key' and 'value', found {[field.name for field in fields]}"
                    )
                partition.add_map_type(f"{fq_message_name}.{nested_type.name}", fields[0], fields[1])
            else:
                partition.add_nested_type(nested_type, index)

        for index, field in enumerate(message.field):
            if field.HasField("oneof_index") and not field.proto3_optional:
                partition.add_oneof_field(field.oneof_index, field, index)
            else:
                partition.add_field(field, index)

        declared = self._real_oneofs(message)
        if sorted(partition.oneof_fields) != [index for index, _ in declared]:
            raise SchemaConsistencyError(
                f"message '{fq_message_name}' declares {len(declared)} oneof(s), "
                f"but its fields belong to {len(partition.oneof_fields)}"
            )

        return partition

    @staticmethod
    def _real_oneofs(message: DescriptorProto) -> list[tuple[int, OneofDescriptorProto]]:
        """The declared oneofs, without the synthetic ones that wrap proto3 optional fields."""
        synthetic = {field.oneof_index for field in message.field if field.proto3_optional}
        return [(index, oneof) for index, oneof in enumerate(message.oneof_decl) if index not in synthetic]

    def gen_message(self, message: DescriptorProto) -> None:
        """Generate a `struct` for a message, and a module for its nested types, enums and oneofs.

        Args:
            message (DescriptorProto): The message to generate.
        """
        logger.debug(f"  message: {message.name!r}")

        message_name = message.name
        fq_message_name = self._fq_name(message_name)

        if self.known_type(fq_message_name) is not None:
            return

        partition = self._partition(message, fq_message_name)
        oneofs = self._real_oneofs(message)

        self.append_doc()
        self.state.add(helper.new_derive(MESSAGE_DERIVES))
        self.append_type_attributes(fq_message_name)

        with self.state.block(f"pub struct {to_upper_camel(message_name)}"):
            with self.state.at(SourcePath.MESSAGE_FIELD):
                for field, index in partition.fields:
                    with self.state.at(index):
                        map_entry = partition.map_types.get(field.type_name)
                        if map_entry is not None:
                            self.gen_map_field(fq_message_name, field, map_entry)
                        else:
                            self.gen_field(fq_message_name, field)

            with self.state.at(SourcePath.MESSAGE_ONEOF_DECL):
                for index, oneof in oneofs:
                    with self.state.at(index):
                        self.gen_oneof_field(message_name, fq_message_name, oneof, partition.oneof_fields[index])

        if not (message.enum_type or partition.nested_types or oneofs):
            return

        with self.state.module(message_name):
            with self.state.at(SourcePath.MESSAGE_NESTED_TYPE):
                for nested_type, index in partition.nested_types:
                    with self.state.at(index):
                        self.gen_message(nested_type)

            with self.state.at(SourcePath.MESSAGE_ENUM_TYPE):
                for index, nested_enum in enumerate(message.enum_type):
                    with self.state.at(index):
                        self.gen_enum(nested_enum)

            for index, oneof in oneofs:
                self.gen_oneof(fq_message_name, oneof, index, partition.oneof_fields[index])

    # ===== Attributes and comments =====

    def append_type_attributes(self, fq_name: str) -> None:
        for attribute in self._config.type_attributes_for(fq_name):
            self.state.add(attribute)

    def append_field_attributes(self, fq_name: str, field_name: str) -> None:
        for attribute in self._config.field_attributes_for(fq_name, field_name):
            self.state.add(attribute)

    def location(self) -> SourceCodeInfo.Location:
        """Look up the source location of the declaration at the current path.

        Raises:
            SchemaConsistencyError: If the source code info has no location for the path.
        """
        path = self.state.path
        index = bisect.bisect_left(self._location_paths, path)
        if index == len(self._location_paths) or self._location_paths[index] != path:
            raise SchemaConsistencyError(f"no source location for path {list(path)} in '{self._file.name}'")
        return self._locations[index]

    def comments(self) -> Comments:
        return Comments.from_location(self.location())

    def append_doc(self) -> None:
        """Add the comments of the declaration at the current path."""
        self.state.extend(self.comments().lines())

    # ===== Fields =====

    def gen_field(self, fq_message_name: str, field: FieldDescriptorProto) -> None:
        """Generate a struct field, with its wire tag attribute.

        Group fields are not supported and are skipped.

        Args:
            fq_message_name (str): The fully-qualified name of the enclosing message.
            field (FieldDescriptorProto): The field to generate.
        """
        if field.type == FieldDescriptorProto.TYPE_GROUP:
            logger.warning(f"Skipping group field '{fq_message_name}.{field.name}': groups are not supported.")
            return

        repeated = field.label == FieldDescriptorProto.LABEL_REPEATED
        boxed = self.is_boxed(fq_message_name, field)
        optional = self.optional(field, boxed)
        ty = self.resolve_type(field)

        logger.debug(f"    field: {field.name!r}, type: {ty!r}, boxed: {boxed}")

        self.append_doc()
        self.state.add(helper.new_attribute("prost", self.field_tags(field, optional, boxed)))
        self.append_field_attributes(fq_message_name, field.name)

        if boxed:
            ty = helper.new_group(BOX, [ty])
        if repeated:
            ty = helper.new_group(VEC, [ty])
        elif optional:
            ty = helper.new_group(OPTION, [ty])

        self.state.add(f"pub {to_snake(field.name)}: {ty},")

    def field_tags(self, field: FieldDescriptorProto, optional: bool, boxed: bool) -> list[str]:
        """Build the arguments of a field's `#[prost(...)]` attribute."""
        tags = [self.field_type_tag(field)]

        if field.label == FieldDescriptorProto.LABEL_OPTIONAL:
            if optional:
                tags.append("optional")
        elif field.label == FieldDescriptorProto.LABEL_REQUIRED:
            tags.append("required")
        elif field.label == FieldDescriptorProto.LABEL_REPEATED:
            tags.append("repeated")
            if field.type in PACKABLE_TYPES:
                tags.append(helper.new_key_value("packed", "true" if self.packed(field) else "false"))

        if boxed:
            tags.append("boxed")

        tags.append(helper.new_key_value("tag", field.number))

        if field.HasField("default_value"):
            tags.append(helper.new_key_value("default", self.default_literal(field)))

        return tags

    def default_literal(self, field: FieldDescriptorProto) -> str:
        """Re-encode a field's default value for the `default` attribute argument.

        `bytes` defaults are decoded and re-escaped, enum defaults are converted to the
        variant name. Other defaults are passed through as written in the schema.
        """
        default = field.default_value

        if field.type == FieldDescriptorProto.TYPE_BYTES:
            return helper.bytes_default_literal(default)

        if field.type == FieldDescriptorProto.TYPE_ENUM:
            value = to_upper_camel(default)
            if self._config.strip_enum_prefix:
                enum_type = to_upper_camel(field.type_name.split(".")[-1])
                value = helper.strip_enum_prefix(enum_type, value)
            return value

        # Assumes the schema's literal escaping is compatible with Rust's.
        return default

    def gen_map_field(self, fq_message_name: str, field: FieldDescriptorProto, map_entry: MapEntry) -> None:
        """Generate a map field from the key and value fields of its synthetic map entry."""
        key, value = map_entry
        key_ty = self.resolve_type(key)
        value_ty = self.resolve_type(value)

        logger.debug(f"    map field: {field.name!r}, key type: {key_ty!r}, value type: {value_ty!r}")

        self.append_doc()

        if self._config.uses_btree_map(fq_message_name, field.name):
            annotation_ty, rust_ty = "btree_map", BTREE_MAP
        else:
            annotation_ty, rust_ty = "map", HASH_MAP

        key_value_tag = helper.join_parameters([self.field_type_tag(key), self.map_value_type_tag(value)])
        self.state.add(
            helper.new_attribute(
                "prost", [helper.new_key_value(annotation_ty, key_value_tag), helper.new_key_value("tag", field.number)]
            )
        )
        self.append_field_attributes(fq_message_name, field.name)
        self.state.add(f"pub {to_snake(field.name)}: {helper.new_group(rust_ty, [key_ty, value_ty])},")

    def _oneof_type_name(self, message_name: str, oneof: OneofDescriptorProto) -> str:
        return f"{to_snake(message_name)}::{to_upper_camel(oneof.name)}"

    def gen_oneof_field(
        self,
        message_name: str,
        fq_message_name: str,
        oneof: OneofDescriptorProto,
        fields: list[IndexedField],
    ) -> None:
        """Generate the struct field that holds the active member of a oneof."""
        name = self._oneof_type_name(message_name, oneof)
        tags = ", ".join(str(number) for number in sorted(field.number for field, _ in fields))

        self.append_doc()
        self.state.add(
            helper.new_attribute("prost", [helper.new_key_value("oneof", name), helper.new_key_value("tags", tags)])
        )
        self.append_field_attributes(fq_message_name, oneof.name)
        self.state.add(f"pub {to_snake(oneof.name)}: {helper.new_group(OPTION, [name])},")

    def gen_oneof(
        self, fq_message_name: str, oneof: OneofDescriptorProto, index: int, fields: list[IndexedField]
    ) -> None:
        """Generate the `enum` with one variant per member of a oneof.

        Args:
            fq_message_name (str): The fully-qualified name of the enclosing message.
            oneof (OneofDescriptorProto): The oneof.
            index (int): The declaration index of the oneof in the message.
            fields (list[IndexedField]): The oneof members, with their field indexes.
        """
        with self.state.at(SourcePath.MESSAGE_ONEOF_DECL, index):
            self.append_doc()

        fq_oneof_name = f"{fq_message_name}.{oneof.name}"

        self.state.add(helper.new_derive(ONEOF_DERIVES))
        self.append_type_attributes(fq_oneof_name)

        with self.state.block(f"pub enum {to_upper_camel(oneof.name)}"), self.state.at(SourcePath.MESSAGE_FIELD):
            for field, field_index in fields:
                if field.type == FieldDescriptorProto.TYPE_GROUP:
                    logger.warning(f"Skipping group field '{fq_oneof_name}.{field.name}': groups are not supported.")
                    continue

                with self.state.at(field_index):
                    self.append_doc()

                tags = [self.field_type_tag(field), helper.new_key_value("tag", field.number)]
                self.state.add(helper.new_attribute("prost", tags))
                self.append_field_attributes(fq_oneof_name, field.name)

                ty = self.resolve_type(field)
                boxed = self.is_boxed(fq_message_name, field)

                logger.debug(f"    oneof: {field.name!r}, type: {ty!r}, boxed: {boxed}")

                if boxed:
                    ty = helper.new_group(BOX, [ty])
                self.state.add(f"{to_upper_camel(field.name)}({ty}),")

    # ===== Enums =====

    def gen_enum(self, enum: EnumDescriptorProto) -> None:
        """Generate an `enum`, skipping values whose number was already used by an earlier value.

        Args:
            enum (EnumDescriptorProto): The enum to generate.
        """
        logger.debug(f"  enum: {enum.name!r}")

        fq_enum_name = self._fq_name(enum.name)
        if self.known_type(fq_enum_name) is not None:
            return

        prefix_to_strip = to_upper_camel(enum.name) if self._config.strip_enum_prefix else None

        self.append_doc()
        self.state.add(helper.new_derive(ENUM_DERIVES))
        self.append_type_attributes(fq_enum_name)

        numbers: set[int] = set()
        with self.state.block(f"pub enum {to_upper_camel(enum.name)}"), self.state.at(SourcePath.ENUM_VALUE):
            for index, value in enumerate(enum.value):
                # Aliases share a number with an earlier value (`allow_alias`), the first one wins.
                if value.number in numbers:
                    logger.debug(f"    skipping alias {value.name!r} = {value.number}")
                    continue
                numbers.add(value.number)

                with self.state.at(index):
                    self.gen_enum_value(fq_enum_name, value, prefix_to_strip)

    def gen_enum_value(self, fq_enum_name: str, value: EnumValueDescriptorProto, prefix_to_strip: str | None) -> None:
        self.append_doc()
        self.append_field_attributes(fq_enum_name, value.name)

        name = to_upper_camel(value.name)
        if prefix_to_strip is not None:
            name = helper.strip_enum_prefix(prefix_to_strip, name)

        self.state.add(f"{name} = {value.number},")

    # ===== Services =====

    def describe_service(self, service: ServiceDescriptorProto) -> Service:
        """Assemble the language-agnostic description of a service for the service generator."""
        logger.debug(f"  service: {service.name!r}")

        comments = self.comments()

        with self.state.at(SourcePath.SERVICE_METHOD):
            methods = []
            for index, method in enumerate(service.method):
                with self.state.at(index):
                    methods.append(self.describe_method(method))

        return Service(
            name=to_upper_camel(service.name),
            proto_name=service.name,
            package=self._file.package,
            comments=comments,
            methods=methods,
            options=service.options,
        )

    def describe_method(self, method: MethodDescriptorProto) -> Method:
        logger.debug(f"  method: {method.name!r}")

        return Method(
            name=to_snake(method.name),
            proto_name=method.name,
            comments=self.comments(),
            input_type=self.resolve_message_type(method.input_type),
            output_type=self.resolve_message_type(method.output_type),
            input_proto_type=method.input_type,
            output_proto_type=method.output_type,
            client_streaming=method.client_streaming,
            server_streaming=method.server_streaming,
            options=method.options,
        )

    # ===== Type resolution =====

    def is_boxed(self, fq_message_name: str, field: FieldDescriptorProto) -> bool:
        """Whether a field embeds the enclosing message by value, directly or transitively."""
        return (
            field.label != FieldDescriptorProto.LABEL_REPEATED
            and field.type == FieldDescriptorProto.TYPE_MESSAGE
            and self._message_graph.is_nested(field.type_name, fq_message_name)
        )

    def optional(self, field: FieldDescriptorProto, boxed: bool = False) -> bool:
        """Whether a singular field is wrapped in an `Option`.

        proto2 tracks presence of every optional field. proto3 only does for fields declared
        `optional`, for wrapper types, and for recursive message fields, whose cycle could
        not end otherwise.
        """
        if field.label != FieldDescriptorProto.LABEL_OPTIONAL:
            return False

        if self.syntax == Syntax.PROTO2 or field.proto3_optional:
            return True

        if field.type == FieldDescriptorProto.TYPE_MESSAGE:
            return boxed or field.type_name in WRAPPER_TYPES

        return False

    def packed(self, field: FieldDescriptorProto) -> bool:
        """Whether a repeated packable field uses the packed encoding."""
        if field.options.HasField("packed"):
            return field.options.packed
        return self.syntax == Syntax.PROTO3

    def resolve_type(self, field: FieldDescriptorProto) -> str:
        """The Rust type of a field's value, without container wrappers."""
        if field.type in (FieldDescriptorProto.TYPE_MESSAGE, FieldDescriptorProto.TYPE_GROUP):
            return self.resolve_message_type(field.type_name)

        return PROTO_TYPE_TO_RUST[field.type]

    def resolve_message_type(self, fq_name: str) -> str:
        known = self.known_type(fq_name)
        if known is not None:
            return known
        return resolve_ident(fq_name, self.state.package)

    def field_type_tag(self, field: FieldDescriptorProto) -> str:
        if field.type == FieldDescriptorProto.TYPE_ENUM:
            return helper.new_key_value("enumeration", resolve_ident(field.type_name, self.state.package))
        return PROTO_TYPE_TO_TAG[field.type]

    def map_value_type_tag(self, field: FieldDescriptorProto) -> str:
        if field.type == FieldDescriptorProto.TYPE_ENUM:
            return f"enumeration({resolve_ident(field.type_name, self.state.package)})"
        return self.field_type_tag(field)

    def known_type(self, fq_name: str) -> str | None:
        """The Rust type for a protobuf type that is not generated.

        Either a well-known type (unless disabled), or a user-provided extern path.

        Args:
            fq_name (str): The fully-qualified protobuf type name.

        Returns:
            str | None: The Rust type, or None if the type is generated.
        """
        if self._config.well_known_types and fq_name in WELL_KNOWN_TYPES:
            return WELL_KNOWN_TYPES[fq_name]

        return self._config.extern_paths.get(fq_name)
