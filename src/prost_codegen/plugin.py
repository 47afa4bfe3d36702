"""protoc plugin front end, `protoc --prost_out=OUT_DIR --prost_opt=OPTIONS`.

Options are comma separated:
    - `type_attribute=MATCHER=ATTRIBUTE`, `field_attribute=MATCHER=ATTRIBUTE`
    - `btree_map=MATCHER`
    - `extern_path=PROTO_PATH=RUST_PATH`
    - `retain_enum_prefix`, `compile_well_known_types`, `services`

Attributes cannot contain a comma, since the comma separates options.
"""

from __future__ import annotations

import logging
import sys

from google.protobuf.compiler.plugin_pb2 import CodeGeneratorRequest, CodeGeneratorResponse

from prost_codegen.config import Config, parse_rule
from prost_codegen.proto_types import SchemaConsistencyError
from prost_codegen.run import generate_modules, module_file_name
from prost_codegen.service import TraitServiceGenerator

logger = logging.getLogger(__name__)

_RULE_OPTIONS = ("type_attribute", "field_attribute", "extern_path")
_FLAG_OPTIONS = ("retain_enum_prefix", "compile_well_known_types", "services")


def parse_parameter(parameter: str) -> Config:
    """Build the customization rules from the plugin parameter.

    Args:
        parameter (str): The comma-separated options, as passed by protoc.

    Raises:
        ValueError: If an option is unknown or malformed.

    Returns:
        Config: The customization rules.
    """
    rules: dict[str, list[tuple[str, str]]] = {option: [] for option in _RULE_OPTIONS}
    btree_map: list[str] = []
    flags: set[str] = set()

    for part in parameter.split(","):
        part = part.strip()
        if not part:
            continue

        key, _, value = part.partition("=")
        if key in _RULE_OPTIONS:
            rules[key].append(parse_rule(value))
        elif key == "btree_map":
            btree_map.append(value)
        elif key in _FLAG_OPTIONS and not value:
            flags.add(key)
        else:
            raise ValueError(f"Unknown plugin option '{part}'.")

    return Config(
        type_attributes=tuple(rules["type_attribute"]),
        field_attributes=tuple(rules["field_attribute"]),
        btree_map=tuple(btree_map),
        extern_paths=dict(rules["extern_path"]),
        strip_enum_prefix="retain_enum_prefix" not in flags,
        well_known_types="compile_well_known_types" not in flags,
        service_generator=TraitServiceGenerator() if "services" in flags else None,
    )


def process(request: CodeGeneratorRequest) -> CodeGeneratorResponse:
    """Generate one `.rs` file per package of the requested files.

    Generation faults are reported through `CodeGeneratorResponse.error`, in which case
    the response holds no files.
    """
    response = CodeGeneratorResponse(supported_features=CodeGeneratorResponse.Feature.FEATURE_PROTO3_OPTIONAL)

    try:
        config = parse_parameter(request.parameter)
        modules = generate_modules(config, request.proto_file, request.file_to_generate)
    except (SchemaConsistencyError, ValueError, KeyError) as e:
        logger.error(f"Generation failed: {e}")
        response.error = str(e)
        return response

    for module, content in modules.items():
        output = response.file.add()
        output.name = module_file_name(module)
        output.content = content

    return response


def main() -> None:
    """Read a `CodeGeneratorRequest` from stdin and write the `CodeGeneratorResponse` to stdout."""
    # stdout carries the response, log records go to stderr.
    logging.basicConfig(level=logging.WARNING, stream=sys.stderr)

    request = CodeGeneratorRequest()
    request.ParseFromString(sys.stdin.buffer.read())

    response = process(request)

    sys.stdout.buffer.write(response.SerializeToString())
