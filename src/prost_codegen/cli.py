"""Command-line interface for generating prost Rust modules from protobuf descriptor sets.

Notes:
    - The input is a serialized `FileDescriptorSet` that includes source info, e.g. from
      `protoc --include_imports --include_source_info --descriptor_set_out=set.pb *.proto`.
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence

from prost_codegen.proto_types import SchemaConsistencyError
from prost_codegen.run import run

logger = logging.getLogger(__name__)


def _add_rule_argument(parser: argparse.ArgumentParser, flag: str, dest: str, metavar: str, help: str):
    """Add a repeatable rule argument to a parser.

    Args:
        parser (argparse.ArgumentParser): The parser to add the argument to.
        flag (str): The option flag.
        dest (str): The attribute name of the collected rules.
        metavar (str): The rule shape shown in the usage.
        help (str): The help text.
    """
    parser.add_argument(flag, dest=dest, type=str, action="append", default=[], metavar=metavar, help=help)


def setup_parser() -> argparse.ArgumentParser:
    """Setup for the parser.

    Returns:
        argparse.ArgumentParser: The parser after setup.
    """
    parser = argparse.ArgumentParser(description="Generate prost Rust modules from protobuf descriptor sets.")

    parser.add_argument(
        "-d",
        "--descriptor-set",
        dest="descriptor_sets",
        type=str,
        nargs="+",
        required=True,
        help="serialized FileDescriptorSet files, generated with source info.",
    )

    parser.add_argument(
        "-f",
        "--files",
        type=str,
        nargs="+",
        default=[],
        help="names of the proto files to generate; defaults to all files of the descriptor sets.",
    )

    parser.add_argument(
        "-o",
        "--output-dir",
        type=str,
        default=".",
        help="directory to write the generated modules to.",
    )

    _add_rule_argument(
        parser, "--type-attribute", "type_attributes", "MATCHER=ATTRIBUTE", "add an attribute to matching types."
    )
    _add_rule_argument(
        parser, "--field-attribute", "field_attributes", "MATCHER=ATTRIBUTE", "add an attribute to matching fields."
    )
    _add_rule_argument(
        parser, "--btree-map", "btree_map", "MATCHER", "generate matching map fields as BTreeMap instead of HashMap."
    )
    _add_rule_argument(
        parser,
        "--extern-path",
        "extern_paths",
        "PROTO_PATH=RUST_PATH",
        "use an existing Rust type for a fully-qualified protobuf type instead of generating it.",
    )

    parser.add_argument(
        "--retain-enum-prefix",
        default=False,
        action="store_true",
        help="keep the enum name as prefix of enum value names.",
    )

    parser.add_argument(
        "--compile-well-known-types",
        default=False,
        action="store_true",
        help="generate google.protobuf types instead of using Rust primitives and prost_types.",
    )

    parser.add_argument(
        "--services",
        default=False,
        action="store_true",
        help="generate a Rust trait for every service.",
    )

    parser.add_argument(
        "--rustfmt",
        default=False,
        action="store_true",
        help="format the generated modules with rustfmt.",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        default=False,
        action="store_true",
        help="log every visited declaration.",
    )

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the generator.

    Args:
        argv (Sequence[str] | None, optional): Run arguments. Defaults to None.

    Returns:
        int: Error code.
    """
    parser = setup_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        run(args)
    except SchemaConsistencyError as e:
        logger.error(f"Inconsistent descriptor, no output was written for it: {e}")
        return 1
    except (KeyError, ValueError) as e:
        logger.error(f"Invalid arguments: {e}")
        return 2

    return 0
