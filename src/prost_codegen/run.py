"""Top-level module for generating Rust modules from a protobuf descriptor set."""

from __future__ import annotations

import argparse
import logging
import os.path
import shutil
import subprocess
from collections.abc import Iterable, Sequence

from google.protobuf.descriptor_pb2 import FileDescriptorProto, FileDescriptorSet

from prost_codegen import writer
from prost_codegen.config import Config, parse_rules
from prost_codegen.message_graph import MessageGraph
from prost_codegen.proto_types import Module
from prost_codegen.service import TraitServiceGenerator

logger = logging.getLogger(__name__)

RS_SUFFIX = ".rs"
EMPTY_MODULE_FILE_NAME = "_"


def load_descriptor_sets(paths: Iterable[str]) -> list[FileDescriptorProto]:
    """Read serialized `FileDescriptorSet`s, as written by `protoc --descriptor_set_out`.

    Files that appear in more than one set are only kept once, by name.

    Args:
        paths (Iterable[str]): The descriptor set files.

    Returns:
        list[FileDescriptorProto]: The files of all sets, in order of appearance.
    """
    files: dict[str, FileDescriptorProto] = {}

    for path in paths:
        descriptor_set = FileDescriptorSet()
        with open(path, "rb") as descriptor_file:
            descriptor_set.ParseFromString(descriptor_file.read())

        logger.debug(f"Loaded {len(descriptor_set.file)} file(s) from '{path}'.")

        for file in descriptor_set.file:
            files.setdefault(file.name, file)

    return list(files.values())


def module_file_name(module: Module) -> str:
    """The name of the output file for a module, e.g. `foo.bar.rs`, or `_.rs` for the empty package."""
    return (".".join(module) or EMPTY_MODULE_FILE_NAME) + RS_SUFFIX


def generate_modules(
    config: Config, files: Sequence[FileDescriptorProto], file_names: Iterable[str] | None = None
) -> dict[Module, str]:
    """Generate the declarations of a schema set, one output per package.

    A single message graph is built for the complete set, so types from files that are
    not generated still take part in recursion detection.

    Args:
        config (Config): The customization rules.
        files (Sequence[FileDescriptorProto]): All files of the schema set, including imports.
        file_names (Iterable[str] | None): Names of the files to generate. Defaults to all files.

    Raises:
        SchemaConsistencyError: If any generated file breaks a descriptor invariant.

    Returns:
        dict[Module, str]: The emitted text per module, in order of first appearance.
    """
    message_graph = MessageGraph(files)

    if file_names is None:
        selected = list(files)
    else:
        by_name = {file.name: file for file in files}
        selected = []
        for file_name in file_names:
            if file_name not in by_name:
                raise KeyError(f"'{file_name}' is not part of the descriptor set.")
            selected.append(by_name[file_name])

    modules: dict[Module, str] = {}
    for file in selected:
        module = writer.module(file)
        logger.debug(f"Generating '{file.name}' into module {'::'.join(module) or '<root>'}.")
        modules[module] = modules.get(module, "") + writer.generate(config, message_graph, file)

    return modules


def format_outputs(raw_input: str) -> str:
    """Formats raw input using rustfmt.

    Args:
        raw_input (str): The unformatted input.

    Returns:
        str: The formatted outputs, or the raw input if formatting fails.
    """
    if shutil.which("rustfmt") is None:
        logger.error("rustfmt not found, writing unformatted output.")
        return raw_input

    try:
        result = subprocess.run(
            ["rustfmt", "--emit", "stdout", "--edition", "2021"],
            input=raw_input,
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout

    except subprocess.CalledProcessError as e:
        logger.error(f"rustfmt formatting failed: {e}")
        logger.error(f"Stderr: {e.stderr}")
        # Return unformatted output on error
        return raw_input


def config_from_args(args: argparse.Namespace) -> Config:
    """Build the customization rules from the command-line arguments."""
    return Config(
        type_attributes=parse_rules(args.type_attributes),
        field_attributes=parse_rules(args.field_attributes),
        btree_map=tuple(args.btree_map),
        extern_paths=dict(parse_rules(args.extern_paths)),
        strip_enum_prefix=not args.retain_enum_prefix,
        well_known_types=not args.compile_well_known_types,
        service_generator=TraitServiceGenerator() if args.services else None,
    )


def run(args: argparse.Namespace) -> list[str]:
    """Run the generator on a set of descriptor set files.

    Uses `generate_modules` on the combined descriptor sets and writes one `.rs` file per package.

    Args:
        args (argparse.Namespace): The arguments that were passed when calling the generator.

    Returns:
        list[str]: The paths of the written files.
    """
    config = config_from_args(args)
    files = load_descriptor_sets(args.descriptor_sets)
    modules = generate_modules(config, files, args.files or None)

    output_dir: str = args.output_dir
    os.makedirs(output_dir, exist_ok=True)

    written = []
    for module, raw_output in modules.items():
        output = format_outputs(raw_output) if args.rustfmt else raw_output
        output_path = os.path.join(output_dir, module_file_name(module))

        with open(output_path, "w", encoding="utf8") as output_file:
            output_file.write(output)

        logger.info("Wrote module to '%s'.", output_path)
        written.append(output_path)

    return written
